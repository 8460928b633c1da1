"""
Sync client entry point.

    python -m syncer.main [sync|watch]

sync   one sync round, then exit
watch  sync once, then watch the project and sync after each batch of changes
"""

import asyncio
import signal
import sys

from dotenv import load_dotenv

# Load env vars BEFORE config imports
load_dotenv(override=False)

from infra.exceptions import AuthorizationError, ValidationError
from infra.logger import get_logger, setup_logging
from syncer.api_client import SyncApiClient
from syncer.config import syncer_config
from syncer.sync_client import SyncClient, SyncResult
from syncer.watcher import FileWatcher

COMMANDS = ("sync", "watch")


def _log_result(log, result: SyncResult) -> None:
    log.info(
        "syncer.result",
        project_id=result.project_id,
        action=result.action,
        status=result.status.value,
        root=result.merkle_root,
        files=result.files,
        chunks=result.chunks,
        needed=len(result.needed),
        cached=len(result.cached),
        errors=result.errors[:10],
    )


async def run_watch(client: SyncClient, log) -> None:
    lock = asyncio.Lock()

    async def on_batch(updates) -> None:
        async with lock:
            try:
                _log_result(log, await client.sync())
            except ConnectionError as e:
                # dirty set is kept, next batch retries
                log.warning("syncer.watch.sync_failed", error=str(e))

    watcher = FileWatcher(client.tree_builder, syncer_config.WATCH_DEBOUNCE_MS, on_batch)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, watcher.stop)

    await watcher.run()


async def main(command: str) -> int:
    setup_logging(log_level=syncer_config.LOG_LEVEL)
    log = get_logger("syncer")
    log.info("syncer.boot", command=command, **syncer_config.to_dict_public())

    async with SyncApiClient(
        syncer_config.BASE_URL,
        syncer_config.AUTH_TOKEN,
        timeout=syncer_config.REQUEST_TIMEOUT,
    ) as api:
        client = SyncClient.from_config(syncer_config, api)
        try:
            result = await client.sync()
        except (AuthorizationError, ValidationError) as e:
            log.error("syncer.rejected", error=str(e))
            return 2
        _log_result(log, result)

        if command == "watch":
            await run_watch(client, log)
        return 0


if __name__ == "__main__":
    command = sys.argv[1] if len(sys.argv) > 1 else "sync"
    if command not in COMMANDS:
        print(f"usage: python -m syncer.main [{'|'.join(COMMANDS)}]", file=sys.stderr)
        sys.exit(64)
    try:
        sys.exit(asyncio.run(main(command)))
    except KeyboardInterrupt:
        sys.exit(0)
