"""
Transcription Poller Worker.

Polls AssemblyAI for every process still in ``processing`` state and
runs template extraction as soon as its transcript completes.

Start with:
    python -m datavox.workers.transcription_poller
"""

from __future__ import annotations

import asyncio
import os
import signal
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))

from dotenv import load_dotenv
load_dotenv(".env.local")

from datavox.config import StorageBackend, get_settings
from datavox.logging_config import get_logger, setup_logging
from datavox.services.process_pipeline import ProcessPipeline
from datavox.services.transcription_client import TranscriptionClient
from datavox.storage import create_storage
from datavox.stores.process_store import ProcessStore
from datavox.stores.template_store import TemplateStore

setup_logging()
logger = get_logger(__name__)
settings = get_settings()


class TranscriptionPollerWorker:
    """
    Repeatedly advances processing processes.

    Flow per tick:
    1. Reload templates and processes from shared storage
    2. Poll each processing transcript
    3. Completed transcripts get extracted and marked ``completed``;
       vendor errors mark the process ``error``
    """

    def __init__(self, pipeline: ProcessPipeline | None = None) -> None:
        self._running = False
        self._pipeline = pipeline

    async def _build_pipeline(self) -> ProcessPipeline:
        if settings.storage_backend == StorageBackend.MEMORY:
            logger.warning("poller_using_memory_storage")
        storage = create_storage()
        templates = TemplateStore(storage)
        processes = ProcessStore(storage)
        return ProcessPipeline(TranscriptionClient(), templates, processes)

    async def tick(self) -> int:
        """Run one polling pass. Returns the number of processes that finished."""
        pipeline = self._pipeline
        await pipeline.templates.initialize()
        return await pipeline.refresh_all()

    async def start(self) -> None:
        if self._pipeline is None:
            self._pipeline = await self._build_pipeline()
        self._running = True
        logger.info("transcription_poller_started", poll_interval=settings.poll_interval_seconds)

        while self._running:
            try:
                finished = await self.tick()
                if finished:
                    logger.info("poll_tick_complete", finished=finished)
            except Exception as e:
                logger.error("transcription_poller_error", error=str(e))
            await asyncio.sleep(settings.poll_interval_seconds)

    async def stop(self) -> None:
        self._running = False
        if self._pipeline is not None:
            await self._pipeline.client.aclose()
        logger.info("transcription_poller_stopped")


async def main() -> None:
    worker = TranscriptionPollerWorker()

    loop = asyncio.get_running_loop()

    def shutdown_handler() -> None:
        logger.info("shutdown_signal_received")
        asyncio.ensure_future(worker.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown_handler)
        except NotImplementedError:
            pass

    try:
        await worker.start()
    except KeyboardInterrupt:
        await worker.stop()


if __name__ == "__main__":
    asyncio.run(main())
