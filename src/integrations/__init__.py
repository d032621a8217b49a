"""
Clients for external systems the claim mappers depend on.
"""

__all__ = ['team_api']
