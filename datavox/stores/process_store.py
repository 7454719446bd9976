"""
Process Store.

Keeps every transcription process keyed by id and persists the whole
map under the ``processes`` key.

The API and the poller worker each hold their own ProcessStore over the
same storage, so every mutation re-reads the stored map before changing
it, and readers call ``reload()`` before answering. The in-memory map is
a cache of the last read, never the source of truth.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from datavox.logging_config import get_logger
from datavox.schemas.process import Process, ProcessResult, ProcessStatus
from datavox.storage import StorageAdapter

logger = get_logger(__name__)

PROCESSES_KEY = "processes"


def _newest_first(processes: list[Process]) -> list[Process]:
    return sorted(processes, key=lambda p: p.created_at, reverse=True)


class ProcessStore:
    def __init__(self, storage: StorageAdapter) -> None:
        self._storage = storage
        self._processes: dict[str, Process] = {}

    async def initialize(self) -> None:
        await self.reload()
        logger.info("processes_initialized", count=len(self._processes))

    async def reload(self) -> None:
        """Replace the cached map with what is currently in storage."""
        await self._storage.init()
        stored = await self._storage.get_item(PROCESSES_KEY) or {}
        self._processes = {pid: Process.model_validate(raw) for pid, raw in stored.items()}

    async def _persist(self) -> None:
        await self._storage.set_item(
            PROCESSES_KEY, {pid: p.to_wire() for pid, p in self._processes.items()}
        )

    # -- Queries (against the last reload) --

    def get(self, process_id: str) -> Process | None:
        return self._processes.get(process_id)

    def all(self) -> list[Process]:
        return _newest_first(list(self._processes.values()))

    def by_user(self, user_id: str) -> list[Process]:
        return _newest_first([p for p in self._processes.values() if p.created_by == user_id])

    def by_template(self, template_id: str) -> list[Process]:
        return _newest_first([p for p in self._processes.values() if p.template_id == template_id])

    def by_status(self, status: ProcessStatus) -> list[Process]:
        return _newest_first([p for p in self._processes.values() if p.status == status])

    # -- Mutations --

    async def add(self, process: Process) -> Process:
        await self.reload()
        self._processes[process.id] = process
        await self._persist()
        logger.info("process_added", process_id=process.id, template_id=process.template_id)
        return process

    async def update(self, process_id: str, **changes: Any) -> Process:
        """Apply attribute changes to the stored process and bump its ``updated_at``."""
        await self.reload()
        existing = self._processes.get(process_id)
        if existing is None:
            raise KeyError(process_id)

        updated = existing.model_copy(
            update={**changes, "updated_at": datetime.now(timezone.utc)}
        )
        self._processes[process_id] = updated
        await self._persist()
        return updated

    async def delete(self, process_id: str) -> None:
        await self.reload()
        if self._processes.pop(process_id, None) is None:
            raise KeyError(process_id)
        await self._persist()
        logger.info("process_deleted", process_id=process_id)

    async def update_structured_data(
        self, process_id: str, data: dict[str, Any], **changes: Any
    ) -> Process:
        """
        Replace the process's structured data wholesale.

        Extra ``changes`` (e.g. a new ``template_id``) land in the same write.
        """
        await self.reload()
        existing = self._processes.get(process_id)
        if existing is None:
            raise KeyError(process_id)

        result = (existing.result or ProcessResult()).model_copy(
            update={"structured_data": dict(data)}
        )
        updated = existing.model_copy(
            update={**changes, "result": result, "updated_at": datetime.now(timezone.utc)}
        )
        self._processes[process_id] = updated
        await self._persist()
        return updated
