"""
rolesync.auth

Operator authentication for the admin API.

Responsibilities:
- Operator token issuing/validation.
- FastAPI dependencies that resolve the calling operator and enforce scopes.
"""
