"""
Utility functions for Lambda handler operations.

This package contains reusable service functions, such as loading the
configured mapper instances.
"""

__all__ = ['mapper_config']
