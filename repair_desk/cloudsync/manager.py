"""Own the order store, the remote client and the retry schedule."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta, tzinfo
from pathlib import Path
from typing import Any

from aiohttp import ClientSession

from ..const import (
    CONF_API_KEY,
    CONF_BASE_URL,
    CONF_PROJECT_ID,
    CONF_REQUEST_TIMEOUT,
    CONF_STORAGE_DIR,
    CONF_SYNC_CONCURRENCY,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_STORAGE_DIR,
    DEFAULT_SYNC_CONCURRENCY,
)
from ..customers import CustomerBook
from ..models import OrderRecord
from ..orders import new_order
from ..query import FilterSpec, filter_orders
from ..storage import OrderStore
from ..utils.logging import warn_once
from .engine import ReconcileReport, ReconciliationEngine
from .remote import DocumentStoreClient, NotFoundError, RemoteOrderStore
from .retry import RetryExhaustedError, RetryPolicy

_LOGGER = logging.getLogger(__name__)

SOURCE_LOCAL = "local"
SOURCE_REMOTE = "remote"


class CloudSyncError(RuntimeError):
    """Raised when the manager refuses to run a sync operation."""

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason


@dataclass(slots=True)
class SyncConfig:
    """Settings for talking to the remote document store."""

    base_url: str = ""
    project_id: str = ""
    api_key: str | None = None
    storage_dir: str = DEFAULT_STORAGE_DIR
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    concurrency: int = DEFAULT_SYNC_CONCURRENCY
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> SyncConfig:
        base_url = str(options.get(CONF_BASE_URL, "") or "").strip()
        project_id = str(options.get(CONF_PROJECT_ID, "") or "").strip()
        api_key = str(options.get(CONF_API_KEY, "") or "").strip() or None
        storage_dir = str(options.get(CONF_STORAGE_DIR, "") or "").strip() or DEFAULT_STORAGE_DIR
        try:
            concurrency = max(1, int(options.get(CONF_SYNC_CONCURRENCY, DEFAULT_SYNC_CONCURRENCY)))
        except (TypeError, ValueError):
            concurrency = DEFAULT_SYNC_CONCURRENCY
        try:
            timeout = float(options.get(CONF_REQUEST_TIMEOUT, DEFAULT_REQUEST_TIMEOUT))
        except (TypeError, ValueError):
            timeout = DEFAULT_REQUEST_TIMEOUT
        if timeout <= 0:
            timeout = DEFAULT_REQUEST_TIMEOUT
        return cls(
            base_url=base_url,
            project_id=project_id,
            api_key=api_key,
            storage_dir=storage_dir,
            retry=RetryPolicy.from_options(options),
            concurrency=concurrency,
            request_timeout=timeout,
        )

    @property
    def ready(self) -> bool:
        return bool(self.base_url and self.project_id)


class OrderSyncManager:
    """Entry point used by the UI layer.

    Local mutations go straight to the :class:`OrderStore`. Reconciliation
    passes are serialized by a lock; a pass with failures schedules one
    delayed full re-run following :class:`RetryPolicy`, and a user-initiated
    pass supersedes any retry that is still waiting.
    """

    def __init__(
        self,
        config: SyncConfig,
        *,
        store: OrderStore | None = None,
        remote: RemoteOrderStore | None = None,
        customers: CustomerBook | None = None,
        session: ClientSession | None = None,
    ) -> None:
        self.config = config
        self.store = store or OrderStore(base_dir=Path(config.storage_dir))
        self.customers = customers or CustomerBook(base_dir=self.store.path.parent)
        self._remote = remote
        self._owns_remote = remote is None
        self._session = session
        self._lock = asyncio.Lock()
        self._retry_task: asyncio.Task | None = None
        self._generation = 0
        self._next_retry_at: datetime | None = None
        self._attempt = 0
        self._retry_exhausted = False
        self._stopped = False
        self._last_report: ReconcileReport | None = None
        self._last_pass_at: datetime | None = None
        self._last_error: str | None = None
        self._remote_snapshot: list[OrderRecord] | None = None

    @property
    def remote(self) -> RemoteOrderStore:
        if self._remote is None:
            if not self.config.ready:
                raise CloudSyncError("remote store is not configured", reason="not_configured")
            self._remote = DocumentStoreClient(
                self.config.base_url,
                self.config.project_id,
                api_key=self.config.api_key,
                session=self._session,
                timeout=self.config.request_timeout,
            )
        return self._remote

    @property
    def retry_pending(self) -> bool:
        return self._retry_task is not None and not self._retry_task.done()

    # ------------------------------------------------------------------
    async def async_reconcile(self) -> ReconcileReport:
        """Run a user-initiated pass, superseding any waiting retry."""

        if self._stopped:
            raise CloudSyncError("sync manager has been stopped", reason="stopped")
        remote = self.remote
        self._generation += 1
        await self._cancel_pending_retry()
        async with self._lock:
            return await self._run_pass(remote, attempt=0)

    async def _run_pass(self, remote: RemoteOrderStore, *, attempt: int) -> ReconcileReport:
        """Run one pass and schedule the follow-up retry; caller holds the lock."""

        await self._cancel_pending_retry()
        engine = ReconciliationEngine(self.store, remote, concurrency=self.config.concurrency)
        try:
            report = await engine.async_run()
        except Exception as err:
            self._last_error = str(err)
            raise
        self._last_report = report
        self._last_pass_at = report.finished_at
        self._last_error = None

        if report.ok:
            if attempt:
                _LOGGER.info("Sync recovered after %d retries", attempt)
            self._attempt = 0
            self._retry_exhausted = False
            return report

        next_attempt = attempt + 1
        try:
            delay = self.config.retry.next_delay(next_attempt)
        except RetryExhaustedError as err:
            self._attempt = attempt
            self._retry_exhausted = True
            _LOGGER.error("%d orders still failing, not retrying: %s", len(report.failed), err)
            return report

        self._attempt = next_attempt
        self._retry_exhausted = False
        if self._stopped:
            return report
        warn_once(
            _LOGGER,
            "sync_retry",
            f"{len(report.failed)} orders failed to sync; retry {next_attempt} in {delay:.1f}s",
        )
        report.retry_scheduled = True
        self._schedule_retry(remote, delay, next_attempt)
        return report

    def _schedule_retry(self, remote: RemoteOrderStore, delay: float, attempt: int) -> None:
        self._generation += 1
        self._next_retry_at = datetime.now(tz=UTC) + timedelta(seconds=delay)
        self._retry_task = asyncio.get_running_loop().create_task(
            self._retry_later(remote, delay, attempt, self._generation)
        )

    async def _retry_later(self, remote: RemoteOrderStore, delay: float, attempt: int, generation: int) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        # Past this point the pass is running and is no longer superseded.
        if self._retry_task is asyncio.current_task():
            self._retry_task = None
            self._next_retry_at = None
        try:
            async with self._lock:
                if generation != self._generation:
                    _LOGGER.debug("Dropping superseded sync retry %d", attempt)
                    return
                await self._run_pass(remote, attempt=attempt)
        except asyncio.CancelledError:
            raise
        except Exception as err:
            _LOGGER.exception("Scheduled sync retry %d failed: %s", attempt, err)

    async def _cancel_pending_retry(self) -> None:
        task = self._retry_task
        if task is None or task is asyncio.current_task():
            return
        self._retry_task = None
        self._next_retry_at = None
        if not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    async def async_wait_idle(self) -> ReconcileReport | None:
        """Wait until no retry is pending and no pass is running."""

        while self._retry_task is not None:
            task = self._retry_task
            with suppress(asyncio.CancelledError):
                await task
            if self._retry_task is task:
                break
        async with self._lock:
            return self._last_report

    async def async_stop(self) -> None:
        """Cancel any waiting retry, let a running pass finish, release the client."""

        self._stopped = True
        self._generation += 1
        await self._cancel_pending_retry()
        async with self._lock:
            pass
        if self._owns_remote and isinstance(self._remote, DocumentStoreClient):
            await self._remote.async_close()
            self._remote = None

    # ------------------------------------------------------------------
    async def async_list_local(self) -> list[OrderRecord]:
        return await self.store.async_load_all()

    async def async_upsert_local(self, record: OrderRecord) -> bool:
        return await self.store.async_upsert(record)

    async def async_create_order(self, *args: Any, **kwargs: Any) -> OrderRecord:
        """Build a new ``Pending`` order with :func:`new_order` and persist it.

        A named customer is also remembered in :attr:`customers`.
        """

        record = await self.store.async_create(new_order(*args, **kwargs))
        if record.customer is not None and record.customer.name.strip():
            await self.customers.async_remember(record.customer)
        return record

    async def async_remove_local(self, order_id: str, *, remote: bool = False) -> bool:
        """Delete ``order_id`` locally; with ``remote=True`` also delete it remotely.

        Reconciliation never propagates deletions, so a local-only delete
        leaves any remote copy in place.
        """

        removed = await self.store.async_delete(order_id)
        if remote:
            try:
                await self.remote.delete_order(order_id)
            except NotFoundError:
                _LOGGER.debug("Order %s was not present remotely", order_id)
            if self._remote_snapshot is not None:
                self._remote_snapshot = [item for item in self._remote_snapshot if item.id != order_id]
        return removed

    async def async_pull_remote(self) -> list[OrderRecord]:
        """Fetch the remote order list and keep it in memory for queries."""

        records = await self.remote.list_orders()
        self._remote_snapshot = records
        return list(records)

    async def async_query(
        self,
        spec: FilterSpec | None = None,
        *,
        source: str = SOURCE_LOCAL,
        tz: tzinfo | None = None,
    ) -> list[OrderRecord]:
        if source == SOURCE_LOCAL:
            records = await self.store.async_load_all()
        elif source == SOURCE_REMOTE:
            records = self._remote_snapshot
            if records is None:
                records = await self.async_pull_remote()
        else:
            raise ValueError(f"unknown source {source!r}")
        return filter_orders(records, spec, tz=tz)

    # ------------------------------------------------------------------
    def status(self, now: datetime | None = None) -> dict[str, Any]:
        """Return a snapshot of the sync state for display."""

        now = now or datetime.now(tz=UTC)
        report = self._last_report
        status: dict[str, Any] = {
            "configured": self.config.ready,
            "stopped": self._stopped,
            "running": self._lock.locked(),
            "local_count": self.store.cached_count,
            "last_pass_at": self._last_pass_at.isoformat() if self._last_pass_at else None,
            "last_report": report.as_dict() if report else None,
            "last_error": self._last_error,
            "retry_attempt": self._attempt,
            "max_attempts": self.config.retry.max_attempts,
            "retry_exhausted": self._retry_exhausted,
            "retry_pending": self.retry_pending,
            "next_retry_at": None,
            "next_retry_in_seconds": None,
        }
        if self._next_retry_at is not None and self.retry_pending:
            status["next_retry_at"] = self._next_retry_at.isoformat()
            status["next_retry_in_seconds"] = max((self._next_retry_at - now).total_seconds(), 0.0)
        if report is None:
            status["summary"] = "never synced"
        elif report.ok:
            status["summary"] = "synced"
        elif self._retry_exhausted:
            status["summary"] = "sync failed"
        else:
            status["summary"] = "some failed, will retry"
        return status


__all__ = ["CloudSyncError", "OrderSyncManager", "SOURCE_LOCAL", "SOURCE_REMOTE", "SyncConfig"]
