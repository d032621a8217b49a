"""
Domain layer for token claim mapping business logic.

This layer contains:
- Data models (type-safe structures)
- Email parsing and short username normalization
- Claim mappers and the mapping pipeline
- Result types (explicit success/failure handling)
"""
