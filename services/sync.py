"""
Remote sync of the catalog and collection.

The local database is always the source of truth for reads. On login the
local and remote copies are merged:

- catalog: union by perfume id, remote wins on collision (seed records are
  never uploaded)
- collection: union by perfume id, the entry with the later (or equal)
  remote ``added_at`` wins

After login, local mutations are committed first and then propagated in the
background by ``SyncPropagator``; remote changes arrive through subscriptions
and are applied with the ``apply_remote_*`` functions.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from pydantic import ValidationError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from exceptions import SyncError
from models import CollectionEntry, PerfumeRecord, as_utc
from sourcing.models import Perfume
from utils.security import redact_secrets_from_text

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[List[Dict[str, Any]]], Awaitable[None]]
Unsubscribe = Callable[[], None]


class RemoteSyncBackend(Protocol):
    """Per-user remote document store (one collection of perfumes and one of
    collection entries per user)."""

    async def fetch_perfumes(self, user_id: str) -> List[Dict[str, Any]]: ...

    async def fetch_collection(self, user_id: str) -> List[Dict[str, Any]]: ...

    async def bulk_write_perfumes(self, user_id: str, perfumes: List[Dict[str, Any]]) -> None: ...

    async def bulk_write_collection(self, user_id: str, entries: List[Dict[str, Any]]) -> None: ...

    async def put_perfume(self, user_id: str, perfume: Dict[str, Any]) -> None: ...

    async def put_collection_entry(self, user_id: str, entry: Dict[str, Any]) -> None: ...

    async def delete_collection_entry(self, user_id: str, perfume_id: str) -> None: ...

    def subscribe_perfumes(self, user_id: str, on_change: ChangeCallback) -> Unsubscribe: ...

    def subscribe_collection(self, user_id: str, on_change: ChangeCallback) -> Unsubscribe: ...


def parse_remote_perfumes(payloads: Iterable[Dict[str, Any]]) -> List[Perfume]:
    perfumes = []
    for payload in payloads:
        try:
            perfumes.append(Perfume.model_validate(payload))
        except ValidationError as e:
            logger.warning(f"[Sync] Skipping invalid remote perfume {payload.get('id')!r}: {e.error_count()} errors")
    return perfumes


def parse_remote_collection(payloads: Iterable[Dict[str, Any]]) -> List[CollectionEntry]:
    entries = []
    for payload in payloads:
        try:
            entries.append(CollectionEntry.from_payload(payload))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"[Sync] Skipping invalid remote collection entry: {type(e).__name__}")
    return entries


def merge_catalog(local: Iterable[Perfume], remote: Iterable[Perfume]) -> List[Perfume]:
    """Union by id; remote records overwrite local ones."""
    merged: Dict[str, Perfume] = {}
    for perfume in local:
        merged[perfume.id] = perfume
    for perfume in remote:
        merged[perfume.id] = perfume
    return list(merged.values())


def merge_collection(
    local: Iterable[CollectionEntry], remote: Iterable[CollectionEntry]
) -> List[CollectionEntry]:
    """Union by perfume id; a remote entry wins when its ``added_at`` is not older."""
    merged: Dict[str, CollectionEntry] = {}
    for entry in local:
        merged[entry.perfume_id] = entry
    for entry in remote:
        current = merged.get(entry.perfume_id)
        if current is None or as_utc(entry.added_at) >= as_utc(current.added_at):
            merged[entry.perfume_id] = entry
    return list(merged.values())


async def _upsert_perfumes(session: AsyncSession, perfumes: Iterable[Perfume]) -> int:
    count = 0
    for perfume in perfumes:
        record = await session.get(PerfumeRecord, perfume.id)
        if record:
            record.apply(perfume)
        else:
            record = PerfumeRecord.from_perfume(perfume)
        session.add(record)
        count += 1
    return count


async def _upsert_entries(session: AsyncSession, entries: Iterable[CollectionEntry]) -> int:
    count = 0
    for entry in entries:
        await session.merge(entry)
        count += 1
    return count


async def apply_remote_catalog_snapshot(session: AsyncSession, payloads: List[Dict[str, Any]]) -> int:
    perfumes = parse_remote_perfumes(payloads)
    count = await _upsert_perfumes(session, perfumes)
    await session.commit()
    return count


async def apply_remote_collection_snapshot(session: AsyncSession, payloads: List[Dict[str, Any]]) -> int:
    """Replace the local collection with the remote snapshot.

    Local entries absent from the snapshot were deleted remotely and are
    removed. Returns the number of local deletions.
    """
    entries = parse_remote_collection(payloads)
    remote_ids = {entry.perfume_id for entry in entries}

    local = (await session.exec(select(CollectionEntry))).all()
    deleted = 0
    for entry in local:
        if entry.perfume_id not in remote_ids:
            await session.delete(entry)
            deleted += 1

    await _upsert_entries(session, entries)
    await session.commit()
    if deleted:
        logger.info(f"[Sync] Removed {deleted} collection entries deleted remotely")
    return deleted


@dataclass
class SyncListeners:
    """Active remote subscriptions for one user."""

    user_id: str
    unsubscribers: List[Unsubscribe] = field(default_factory=list)

    def stop(self) -> None:
        for unsubscribe in self.unsubscribers:
            unsubscribe()
        self.unsubscribers.clear()


def stop_listeners(listeners: Optional[SyncListeners]) -> None:
    """Stop remote subscriptions (logout). Local data stays for offline use."""
    if listeners:
        listeners.stop()
        logger.info(f"[Sync] Stopped listeners for user {listeners.user_id}")


@dataclass
class SyncReport:
    perfumes: int = 0
    entries: int = 0
    remote_write_error: Optional[str] = None


def start_listeners(session_factory, user_id: str, backend: RemoteSyncBackend) -> SyncListeners:
    async def on_perfumes(payloads: List[Dict[str, Any]]) -> None:
        if not payloads:
            return
        async with session_factory() as session:
            await apply_remote_catalog_snapshot(session, payloads)

    async def on_collection(payloads: List[Dict[str, Any]]) -> None:
        async with session_factory() as session:
            await apply_remote_collection_snapshot(session, payloads)

    listeners = SyncListeners(user_id=user_id)
    listeners.unsubscribers.append(backend.subscribe_perfumes(user_id, on_perfumes))
    listeners.unsubscribers.append(backend.subscribe_collection(user_id, on_collection))
    return listeners


async def sync_on_login(
    session_factory,
    user_id: str,
    backend: RemoteSyncBackend,
    *,
    previous: Optional[SyncListeners] = None,
) -> Tuple[SyncReport, SyncListeners]:
    """Merge local and remote data for ``user_id`` and start live listeners.

    Remote read failures propagate (nothing has been written yet). Remote
    write failures after the local commit are logged and reported; the
    local merge stands.
    """
    remote_perfumes = parse_remote_perfumes(await backend.fetch_perfumes(user_id))
    remote_entries = parse_remote_collection(await backend.fetch_collection(user_id))

    async with session_factory() as session:
        records = (await session.exec(
            select(PerfumeRecord).where(PerfumeRecord.data_source != "seed")
        )).all()
        local_perfumes = [record.to_perfume() for record in records]
        local_entries = list((await session.exec(select(CollectionEntry))).all())

        merged_perfumes = merge_catalog(local_perfumes, remote_perfumes)
        merged_entries = merge_collection(local_entries, remote_entries)

        report = SyncReport(
            perfumes=await _upsert_perfumes(session, merged_perfumes),
            entries=await _upsert_entries(session, merged_entries),
        )
        entry_payloads = [entry.to_payload() for entry in merged_entries]
        await session.commit()

    try:
        await backend.bulk_write_perfumes(user_id, [p.model_dump() for p in merged_perfumes])
        await backend.bulk_write_collection(user_id, entry_payloads)
    except Exception as e:
        report.remote_write_error = redact_secrets_from_text(str(e)) or type(e).__name__
        logger.exception(f"[Sync] Remote write after login merge failed for user {user_id}")

    stop_listeners(previous)
    listeners = start_listeners(session_factory, user_id, backend)
    logger.info(
        f"[Sync] Login sync for user {user_id}: {report.perfumes} perfumes, {report.entries} entries"
    )
    return report, listeners


@dataclass
class PendingOperation:
    user_id: str
    kind: str  # put_perfume, put_entry, delete_entry
    payload: Any
    attempts: int = 0
    last_error: Optional[str] = None


class SyncPropagator:
    """Background propagation of committed local changes to the remote store.

    Each operation is retried up to ``max_attempts`` times. Operations that
    still fail are kept in ``failed``, logged, and passed to every failure
    hook. A hook that raises is logged and the remaining hooks still run.
    ``retry_failed`` runs failed operations again.
    """

    def __init__(self, backend: RemoteSyncBackend, *, max_attempts: Optional[int] = None, retry_delay: float = 0.5):
        self.backend = backend
        self.max_attempts = max_attempts or int(os.getenv("SYNC_MAX_ATTEMPTS", "3"))
        self.retry_delay = retry_delay
        self.failed: List[PendingOperation] = []
        self._failure_hooks: List[Callable[[PendingOperation], None]] = []
        self._tasks = set()

    def on_failure(self, hook: Callable[[PendingOperation], None]) -> None:
        self._failure_hooks.append(hook)

    def put_perfume(self, user_id: str, perfume: Perfume) -> asyncio.Task:
        return self._schedule(PendingOperation(user_id, "put_perfume", perfume.model_dump()))

    def put_collection_entry(self, user_id: str, entry: CollectionEntry) -> asyncio.Task:
        return self._schedule(PendingOperation(user_id, "put_entry", entry.to_payload()))

    def delete_collection_entry(self, user_id: str, perfume_id: str) -> asyncio.Task:
        return self._schedule(PendingOperation(user_id, "delete_entry", perfume_id))

    def _schedule(self, operation: PendingOperation) -> asyncio.Task:
        task = asyncio.create_task(self._run(operation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _dispatch(self, op: PendingOperation) -> None:
        """Run one remote write; any failure surfaces as ``SyncError``."""
        writers = {
            "put_perfume": self.backend.put_perfume,
            "put_entry": self.backend.put_collection_entry,
            "delete_entry": self.backend.delete_collection_entry,
        }
        writer = writers.get(op.kind)
        if writer is None:
            raise SyncError(f"Unknown sync operation {op.kind!r}", detail={"kind": op.kind}, retryable=False)
        try:
            await writer(op.user_id, op.payload)
        except Exception as e:
            reason = redact_secrets_from_text(str(e)) or type(e).__name__
            raise SyncError(reason, detail={"kind": op.kind, "user_id": op.user_id}) from e

    def _notify_failure(self, op: PendingOperation) -> None:
        for hook in self._failure_hooks:
            try:
                hook(op)
            except Exception:
                logger.exception(f"[Sync] Failure hook {hook!r} raised for {op.kind}")

    async def _run(self, op: PendingOperation) -> bool:
        while op.attempts < self.max_attempts:
            op.attempts += 1
            try:
                await self._dispatch(op)
                return True
            except SyncError as e:
                op.last_error = e.message
                logger.warning(
                    f"[Sync] {op.kind} failed (attempt {op.attempts}/{self.max_attempts}): {op.last_error}"
                )
                if not e.retryable:
                    break
                if op.attempts < self.max_attempts:
                    await asyncio.sleep(self.retry_delay * op.attempts)

        self.failed.append(op)
        logger.error(
            "Sync operation failed permanently",
            extra={"event": "sync_failed", "kind": op.kind, "attempts": op.attempts},
        )
        self._notify_failure(op)
        return False

    async def drain(self) -> None:
        """Wait for every in-flight operation."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def retry_failed(self) -> int:
        """Re-run permanently failed operations. Returns how many succeeded."""
        pending, self.failed = self.failed, []
        for op in pending:
            op.attempts = 0
        outcomes = await asyncio.gather(*(self._run(op) for op in pending))
        return sum(1 for ok in outcomes if ok)
