"""
Pytest configuration and fixtures for all tests.
"""

import os
import sys
import pytest

# Add src and hooks to Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../hooks'))

# Set up test environment variables before importing any modules
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-west-2')
os.environ.setdefault('ENVIRONMENT', 'test')
os.environ.setdefault('LOG_LEVEL', 'INFO')
os.environ.pop('MAPPER_CONFIG_BUCKET', None)


@pytest.fixture(autouse=True)
def clear_mapper_config_cache():
    """Start every test with an empty mapper config cache."""
    from services import mapper_config
    mapper_config.clear_cache()
    yield
    mapper_config.clear_cache()
