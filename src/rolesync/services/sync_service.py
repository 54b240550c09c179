"""
rolesync.services.sync_service

Administrator-triggered resets from the primary (source-of-truth) guild.

Responsibilities:
- Reset one subject's intent to its syncable roles in the primary guild, then reconcile.
- Turn every failure into a plain-text `SyncResult` for command/API callers.
- Walk every human member of the primary guild at a bounded call rate ("sync all").
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from rolesync.group_clients.base import GroupCatalog, GroupRef
from rolesync.observability.logging import get_logger
from rolesync.reconciliation.classifier import SyncableRoles
from rolesync.reconciliation.engine import ReconciliationEngine
from rolesync.reconciliation.errors import (
    ConfigurationError,
    NotAMemberError,
    StorageError,
    TransientApiError,
)
from rolesync.reconciliation.outcomes import (
    PassStatus,
    ReconcileOutcome,
    SyncAllReport,
    SyncResult,
)
from rolesync.services.intent_store import IntentStore
from rolesync.services.rate_limit import AsyncTokenBucket

log = get_logger(__name__)

ProgressCallback = Callable[[SyncAllReport], Awaitable[None]]


def mention(subject_id: str) -> str:
    return f"<@{subject_id}>"


class RoleSyncService:
    def __init__(
        self,
        *,
        catalog: GroupCatalog,
        store: IntentStore,
        roles: SyncableRoles,
        engine: ReconciliationEngine,
        primary_group_id: str | None,
        limiter: AsyncTokenBucket,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._roles = roles
        self._engine = engine
        self._primary_group_id = primary_group_id
        self._limiter = limiter

    async def primary_group(self) -> GroupRef:
        if not self._primary_group_id:
            raise ConfigurationError(
                "The primary server has not been configured by the bot owner."
            )
        try:
            group = await self._catalog.fetch_group(self._primary_group_id)
        except TransientApiError as e:
            raise ConfigurationError("Error: I cannot access the primary server.") from e
        if group is None:
            log.error("primary_group_unreachable", group_id=self._primary_group_id)
            raise ConfigurationError("Error: I cannot access the primary server.")
        return group

    async def reset_from_source_of_truth(self, subject_id: str) -> ReconcileOutcome:
        """
        Replace the subject's stored intent with the syncable roles it holds in the
        primary guild, then reconcile every other guild to match.

        Raises ConfigurationError, NotAMemberError or StorageError.
        """
        primary = await self.primary_group()
        member = await self._catalog.fetch_member(primary.group_id, subject_id)
        wanted = member.role_names & self._roles.names()
        log.info("reset_from_primary", subject_id=subject_id, roles=sorted(wanted))
        await self._store.replace_all(subject_id, wanted)
        return await self._engine.reconcile(subject_id)

    async def sync_subject(self, subject_id: str) -> SyncResult:
        who = mention(subject_id)
        try:
            outcome = await self.reset_from_source_of_truth(subject_id)
        except ConfigurationError as e:
            return SyncResult(subject_id=subject_id, success=False, message=str(e))
        except NotAMemberError:
            return SyncResult(
                subject_id=subject_id,
                success=False,
                message=(
                    f"User {who} is not a member of the primary server, "
                    "so they cannot be synced."
                ),
            )
        except StorageError:
            return SyncResult(
                subject_id=subject_id,
                success=False,
                message=f"Could not save the role list for {who}. Nothing was changed.",
            )
        except Exception:
            log.exception("sync_subject_crashed", subject_id=subject_id)
            return SyncResult(
                subject_id=subject_id,
                success=False,
                message=f"An unexpected error occurred during the sync for {who}.",
            )

        if outcome.status is PassStatus.skipped:
            return SyncResult(
                subject_id=subject_id,
                success=False,
                message=f"A sync for {who} is already running. Try again in a moment.",
                outcome=outcome,
            )
        if outcome.status is PassStatus.failed:
            return SyncResult(
                subject_id=subject_id,
                success=False,
                message=f"An unexpected error occurred during the sync for {who}.",
                outcome=outcome,
            )
        return SyncResult(
            subject_id=subject_id,
            success=True,
            message=f"Sync complete for {who}: {outcome.summary()}.",
            outcome=outcome,
        )

    async def sync_all(self, *, progress: ProgressCallback | None = None) -> SyncAllReport:
        """
        Reset every non-bot member of the primary guild, one at a time.

        Raises ConfigurationError before touching anyone if the primary guild is
        unusable; individual member failures are counted, never raised.
        """
        primary = await self.primary_group()
        members = list(await self._catalog.list_members(primary.group_id))
        report = SyncAllReport(total=len(members))
        log.info("sync_all_started", group_id=primary.group_id, total=report.total)

        for member in members:
            report.processed += 1
            if member.is_bot:
                report.skipped_bots += 1
            else:
                await self._limiter.acquire()
                result = await self.sync_subject(member.subject_id)
                if result.success:
                    report.succeeded += 1
                else:
                    report.failed += 1
                    report.failures.append(result)
                    log.warning(
                        "sync_all_member_failed",
                        subject_id=member.subject_id,
                        message=result.message,
                    )
            if progress is not None:
                await _notify(progress, report)

        log.info(
            "sync_all_finished",
            total=report.total,
            succeeded=report.succeeded,
            failed=report.failed,
            skipped_bots=report.skipped_bots,
        )
        return report


async def _notify(progress: ProgressCallback, report: SyncAllReport) -> None:
    try:
        await progress(report)
    except Exception:
        log.exception("sync_all_progress_failed")


# --- Module Notes -----------------------------------------------------------
# This is the only path that shrinks a subject's intent wholesale; the listener only
# adds/removes single roles.
