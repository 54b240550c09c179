"""
rolesync.api.routers.sync

Administrator reset endpoints (HTTP counterpart of `/sync me|user|all`).

Responsibilities:
- Reset the calling operator or any subject from the primary guild.
- Start sync-all as a background job and expose its progress.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from starlette.status import HTTP_202_ACCEPTED, HTTP_404_NOT_FOUND, HTTP_503_SERVICE_UNAVAILABLE

from rolesync.api.deps import runtime_dep
from rolesync.auth.deps import require_scope
from rolesync.auth.models import Operator, Scope
from rolesync.reconciliation.errors import ConfigurationError
from rolesync.reconciliation.outcomes import RoleAction, SyncResult
from rolesync.services.jobs import SyncAllJob
from rolesync.services.runtime import RoleSyncRuntime

router = APIRouter(prefix="/v1/sync", tags=["sync"])


class FailureItem(BaseModel):
    group_id: str
    group_name: str
    role_name: str | None = None
    action: str | None = None
    error: str


class SyncResultResponse(BaseModel):
    subject_id: str
    success: bool
    message: str
    status: str | None = None
    added: int = 0
    removed: int = 0
    failures: list[FailureItem] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: SyncResult) -> SyncResultResponse:
        outcome = result.outcome
        if outcome is None:
            return cls(
                subject_id=result.subject_id, success=result.success, message=result.message
            )
        return cls(
            subject_id=result.subject_id,
            success=result.success,
            message=result.message,
            status=outcome.status.value,
            added=outcome.count(RoleAction.add),
            removed=outcome.count(RoleAction.remove),
            failures=[
                FailureItem(
                    group_id=f.group_id,
                    group_name=f.group_name,
                    role_name=f.role_name,
                    action=f.action.value if f.action is not None else None,
                    error=f.error,
                )
                for f in outcome.failures
            ],
        )


class SyncAllJobResponse(BaseModel):
    job_id: uuid.UUID
    status: str
    requested_by: str
    total: int
    processed: int
    succeeded: int
    failed: int
    skipped_bots: int
    error: str | None = None
    started_at: datetime
    finished_at: datetime | None = None

    @classmethod
    def from_job(cls, job: SyncAllJob) -> SyncAllJobResponse:
        r = job.report
        return cls(
            job_id=job.id,
            status=job.status.value,
            requested_by=job.requested_by,
            total=r.total,
            processed=r.processed,
            succeeded=r.succeeded,
            failed=r.failed,
            skipped_bots=r.skipped_bots,
            error=job.error,
            started_at=job.started_at,
            finished_at=job.finished_at,
        )


@router.post("/me", response_model=SyncResultResponse)
async def sync_me(
    operator: Operator = Depends(require_scope(Scope.sync_self)),
    runtime: RoleSyncRuntime = Depends(runtime_dep),
) -> SyncResultResponse:
    result = await runtime.service.sync_subject(operator.subject_id)
    return SyncResultResponse.from_result(result)


@router.post("/users/{subject_id}", response_model=SyncResultResponse)
async def sync_user(
    subject_id: str,
    operator: Operator = Depends(require_scope(Scope.sync_any)),
    runtime: RoleSyncRuntime = Depends(runtime_dep),
) -> SyncResultResponse:
    result = await runtime.service.sync_subject(subject_id)
    return SyncResultResponse.from_result(result)


@router.post("/all", response_model=SyncAllJobResponse, status_code=HTTP_202_ACCEPTED)
async def sync_all(
    operator: Operator = Depends(require_scope(Scope.sync_any)),
    runtime: RoleSyncRuntime = Depends(runtime_dep),
) -> SyncAllJobResponse:
    service = runtime.service
    # Fail fast on configuration problems instead of returning a job that dies at once.
    try:
        await service.primary_group()
    except ConfigurationError as e:
        raise HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e

    job = runtime.jobs.start(
        lambda progress: service.sync_all(progress=progress),
        requested_by=operator.subject_id,
    )
    return SyncAllJobResponse.from_job(job)


@router.get("/jobs/{job_id}", response_model=SyncAllJobResponse)
async def get_sync_all_job(
    job_id: uuid.UUID,
    operator: Operator = Depends(require_scope(Scope.sync_any)),
    runtime: RoleSyncRuntime = Depends(runtime_dep),
) -> SyncAllJobResponse:
    job = runtime.jobs.get(job_id)
    if job is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Job not found")
    return SyncAllJobResponse.from_job(job)
