"""
rolesync.api.routers.roles

Read-only views over stored intent and the syncable role set, plus an on-demand rebuild.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from starlette.status import HTTP_403_FORBIDDEN, HTTP_503_SERVICE_UNAVAILABLE

from rolesync.api.deps import runtime_dep
from rolesync.auth.deps import require_scope
from rolesync.auth.models import Operator, Scope
from rolesync.reconciliation.errors import StorageError
from rolesync.services.runtime import RoleSyncRuntime

router = APIRouter(prefix="/v1", tags=["roles"])


class IntentResponse(BaseModel):
    subject_id: str
    roles: list[str]


class SyncableRoleItem(BaseModel):
    name: str
    group_id: str
    role_id: str


@router.get("/intents/{subject_id}", response_model=IntentResponse)
async def get_intent(
    subject_id: str,
    operator: Operator = Depends(require_scope(Scope.sync_self)),
    runtime: RoleSyncRuntime = Depends(runtime_dep),
) -> IntentResponse:
    if subject_id != operator.subject_id and not operator.can(Scope.sync_any):
        raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Missing scope sync:any")
    try:
        roles = await runtime.store.list_roles(subject_id)
    except StorageError as e:
        raise HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e
    return IntentResponse(subject_id=subject_id, roles=sorted(roles))


@router.get("/syncable-roles", response_model=list[SyncableRoleItem])
async def list_syncable_roles(
    operator: Operator = Depends(require_scope(Scope.sync_self)),
    runtime: RoleSyncRuntime = Depends(runtime_dep),
) -> list[SyncableRoleItem]:
    return [
        SyncableRoleItem(name=name, group_id=ref.group_id, role_id=ref.role_id)
        for name, ref in sorted(runtime.roles.items())
    ]


@router.post("/syncable-roles/rebuild", response_model=list[str])
async def rebuild_syncable_roles(
    operator: Operator = Depends(require_scope(Scope.sync_any)),
    runtime: RoleSyncRuntime = Depends(runtime_dep),
) -> list[str]:
    return sorted(runtime.classifier.rebuild())
