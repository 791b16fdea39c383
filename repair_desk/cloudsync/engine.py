"""Local-wins reconciliation of the on-device order set with the remote store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from ..models import OrderRecord
from ..storage import OrderStore
from ..validation import ValidationError
from .canonical import diff_paths, is_equal
from .remote import RemoteOrderStore, RemoteStoreError

LOGGER = logging.getLogger(__name__)


class RecordOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(slots=True)
class ReconcileReport:
    """Summary of one reconciliation pass.

    ``failed`` lists record ids in the order they appear locally, whatever
    order the per-record work actually completed in.
    """

    succeeded: int = 0
    failed: list[str] = field(default_factory=list)
    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    retry_scheduled: bool = False
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def ok(self) -> bool:
        return not self.failed

    def as_dict(self) -> dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "failed": list(self.failed),
            "retry_scheduled": self.retry_scheduled,
            "created": list(self.created),
            "updated": list(self.updated),
            "skipped": list(self.skipped),
            "errors": dict(self.errors),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


class ReconciliationEngine:
    """Run one decide-then-act pass over every local record.

    For each record the remote copy is fetched; a missing copy is created, a
    divergent one is overwritten with the local copy and an identical one is
    left alone. Failures are isolated per record. The engine never deletes
    anything on either side and never schedules retries itself.
    """

    def __init__(
        self,
        store: OrderStore,
        remote: RemoteOrderStore,
        *,
        concurrency: int = 1,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.remote = remote
        self.concurrency = max(1, int(concurrency))
        self.logger = logger or LOGGER

    async def async_reconcile_record(self, record: OrderRecord) -> RecordOutcome:
        """Bring the remote copy of ``record`` in line with the local one.

        Raises :class:`RemoteStoreError` when any remote call fails.
        """

        try:
            remote = await self.remote.get_order(record.id)
        except ValidationError as err:
            # Unreadable remote copy: local wins, overwrite it.
            self.logger.debug("Remote copy of %s is invalid (%s); overwriting", record.id, err)
            await self.remote.update_order(record.id, record)
            return RecordOutcome.UPDATED

        if remote is None:
            self.logger.debug("Order %s missing remotely; creating", record.id)
            await self.remote.create_order(record)
            return RecordOutcome.CREATED

        if is_equal(record, remote):
            self.logger.debug("Order %s already in sync", record.id)
            return RecordOutcome.SKIPPED

        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug("Order %s diverged at %s; updating", record.id, ", ".join(diff_paths(record, remote)))
        await self.remote.update_order(record.id, record)
        return RecordOutcome.UPDATED

    async def _attempt(self, record: OrderRecord) -> tuple[RecordOutcome, str | None]:
        try:
            return await self.async_reconcile_record(record), None
        except asyncio.CancelledError:
            raise
        except RemoteStoreError as err:
            self.logger.warning("Sync of order %s failed: %s", record.id, err)
            return RecordOutcome.FAILED, str(err)
        except Exception as err:
            self.logger.exception("Unexpected error syncing order %s: %s", record.id, err)
            return RecordOutcome.FAILED, str(err) or type(err).__name__

    async def async_run(self, records: Sequence[OrderRecord] | None = None) -> ReconcileReport:
        """Reconcile ``records`` (default: the full local set) and report."""

        report = ReconcileReport(started_at=datetime.now(tz=UTC))
        if records is None:
            records = await self.store.async_load_all()

        if self.concurrency == 1:
            results = [await self._attempt(record) for record in records]
        else:
            semaphore = asyncio.Semaphore(self.concurrency)

            async def _bounded(record: OrderRecord) -> tuple[RecordOutcome, str | None]:
                async with semaphore:
                    return await self._attempt(record)

            results = await asyncio.gather(*(_bounded(record) for record in records))

        for record, (outcome, error) in zip(records, results, strict=True):
            if outcome is RecordOutcome.FAILED:
                report.failed.append(record.id)
                report.errors[record.id] = error or "unknown error"
                continue
            report.succeeded += 1
            if outcome is RecordOutcome.CREATED:
                report.created.append(record.id)
            elif outcome is RecordOutcome.UPDATED:
                report.updated.append(record.id)
            else:
                report.skipped.append(record.id)

        report.finished_at = datetime.now(tz=UTC)
        self.logger.info(
            "Reconciled %d orders: %d created, %d updated, %d unchanged, %d failed",
            len(records),
            len(report.created),
            len(report.updated),
            len(report.skipped),
            len(report.failed),
        )
        return report


__all__ = ["ReconcileReport", "ReconciliationEngine", "RecordOutcome"]
