"""
rolesync.api

Admin HTTP API for the role sync service.

Responsibilities:
- FastAPI app factory (composition root) and router modules.
- API-layer dependency wiring and request/response models.
"""


# --- Module Notes -----------------------------------------------------------
# Routers stay thin: auth + validation + delegation to `RoleSyncService`.
