"""
rolesync.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide the ORM model, engine/session setup, and the intent repository.
"""


# --- Module Notes -----------------------------------------------------------
# The engine never touches sessions directly; it goes through `services.intent_store`.
