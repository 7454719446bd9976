"""
Shared service instances for the API routers.

Created lazily on first use and injected with ``Depends`` so tests can
swap them through ``app.dependency_overrides``.
"""

from __future__ import annotations

from datavox.logging_config import get_logger
from datavox.services.process_pipeline import ProcessPipeline
from datavox.services.transcription_client import TranscriptionClient
from datavox.storage import StorageAdapter, create_storage
from datavox.stores.process_store import ProcessStore
from datavox.stores.template_store import TemplateStore

logger = get_logger(__name__)

_storage: StorageAdapter | None = None
_template_store: TemplateStore | None = None
_process_store: ProcessStore | None = None
_client: TranscriptionClient | None = None
_pipeline: ProcessPipeline | None = None


def _get_storage() -> StorageAdapter:
    global _storage
    if _storage is None:
        _storage = create_storage()
    return _storage


async def get_template_store() -> TemplateStore:
    global _template_store
    if _template_store is None:
        store = TemplateStore(_get_storage())
        await store.initialize()
        _template_store = store
    return _template_store


async def get_process_store() -> ProcessStore:
    """The shared ProcessStore, re-read from storage so the worker's writes are visible."""
    global _process_store
    if _process_store is None:
        store = ProcessStore(_get_storage())
        await store.initialize()
        _process_store = store
    else:
        await _process_store.reload()
    return _process_store


async def get_pipeline() -> ProcessPipeline:
    global _client, _pipeline
    if _pipeline is None:
        _client = TranscriptionClient()
        _pipeline = ProcessPipeline(
            client=_client,
            templates=await get_template_store(),
            processes=await get_process_store(),
        )
    return _pipeline


async def shutdown() -> None:
    """Close network clients held by the shared instances."""
    global _client, _pipeline
    if _client is not None:
        await _client.aclose()
        _client = None
        _pipeline = None
        logger.info("transcription_client_closed")
