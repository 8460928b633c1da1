"""
Ingestor Main Entry Point

    python -m ingestor.app.main

Initializes storage, validates embedding dimensions and serves the sync
protocol over HTTP until SIGINT/SIGTERM.
"""

import asyncio
import signal
import sys

import uvicorn
from dotenv import load_dotenv

# Load env vars BEFORE config imports
load_dotenv(override=False)

from infra.logger import get_logger, setup_logging, stop_logging
from ingestor.adapters import get_storage
from ingestor.app.bootstrap import build_ingestor
from ingestor.app.dimension_validator import DimensionValidator
from ingestor.config import cache, derivation, runtime, storage as storage_config

_shutdown = asyncio.Event()


def _install_signal_handlers(log):

    def _handler(signame: str):
        log.info("ingestor.shutdown.signal", signal=signame)
        _shutdown.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _handler, sig.name)


async def run_api_server(app, host: str, port: int) -> None:
    config = uvicorn.Config(app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)
    # shutdown is driven by our own signal handlers
    server.install_signal_handlers = lambda: None
    await server.serve()


async def main() -> None:
    setup_logging(log_level=runtime.LOG_LEVEL)
    log = get_logger("ingestor")

    log.info(
        "ingestor.boot",
        env=runtime.ENV,
        port=runtime.PORT,
        storage_type=storage_config.STORAGE_TYPE,
        derivation=derivation.to_dict_public(),
    )

    _install_signal_handlers(log)

    storage = get_storage()
    await storage.initialize()
    log.info("ingestor.storage.initialized")

    ingestor = build_ingestor(storage, runtime, cache, derivation)

    await DimensionValidator(
        dimensions=derivation.EMBEDDING_DIMENSIONS,
        vectors=storage.vectors,
        derivation=ingestor.derivation if derivation.AI_URL else None,
    ).validate_dimensions()

    api_task = asyncio.create_task(run_api_server(ingestor.api.app, runtime.HOST, runtime.PORT))
    log.info("ingestor.api.started", port=runtime.PORT)

    await _shutdown.wait()

    api_task.cancel()
    try:
        await api_task
    except asyncio.CancelledError:
        pass

    await ingestor.close()
    log.info("ingestor.shutdown.complete")
    stop_logging()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
