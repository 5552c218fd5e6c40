import argparse
import asyncio
import json
import logging
import platform
import signal
import sys
import threading
from typing import Optional, Sequence

from solana_watcher.config import Settings, WatchConfigManager, get_settings
from solana_watcher.core.pipeline import WalletActivityPipeline
from solana_watcher.core.presenter import ReportPresenter
from solana_watcher.core.update_source import JsonLinesUpdateSource, QueueUpdateSource
from solana_watcher.exceptions import ConfigurationException
from solana_watcher.utils.logging import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Decode, classify and enrich wallet activity from account updates."
    )
    parser.add_argument("--replay", help="JSON-lines file of update events (default: read stdin)")
    parser.add_argument("--config", help="Watch config file (YAML or JSON)")
    parser.add_argument("--json", action="store_true", help="Print one JSON record per line")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    settings = get_settings()
    if args.json:
        settings.OUTPUT_JSON = True
    if args.log_level:
        settings.LOG_LEVEL = args.log_level.upper()
    if args.config:
        settings.WATCH_CONFIG_PATH = args.config

    if not settings.RPC_URL:
        raise ConfigurationException("RPC_URL is not set")
    return settings


def start_stdin_reader(source: QueueUpdateSource, loop: asyncio.AbstractEventLoop) -> threading.Thread:
    """Feed JSON lines from stdin into the queue source until EOF."""

    def read():
        for line in sys.stdin:
            line = line.strip()
            if not line:
                continue
            try:
                event = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning(f"⚠️ Ignoring malformed stdin event: {e}")
                continue
            loop.call_soon_threadsafe(source.put_nowait, event)
        loop.call_soon_threadsafe(source.close)

    # Daemon so a blocked read never holds up shutdown
    reader = threading.Thread(target=read, name="stdin-reader", daemon=True)
    reader.start()
    return reader


async def main(args: argparse.Namespace, settings: Settings) -> None:
    manager = WatchConfigManager(settings.WATCH_CONFIG_PATH)
    for error in manager.validate():
        logger.warning(f"⚠️ Watch config: {error}")
    watch_config = manager.get_config()

    pipeline = WalletActivityPipeline.build(
        settings, watch_config, ReportPresenter(json_output=settings.OUTPUT_JSON)
    )

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def handle_shutdown(sig):
        logger.info(f"🛑 [SHUTDOWN] Received signal {sig}...")
        shutdown_event.set()

    if platform.system() != "Windows":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: handle_shutdown(s))

    if args.replay:
        source = JsonLinesUpdateSource(args.replay)
    else:
        source = QueueUpdateSource()
        start_stdin_reader(source, loop)

    tracked = len(watch_config.active_addresses())
    logger.info(f"👀 Watching {tracked or 'all'} wallet(s)")

    run_task = asyncio.create_task(pipeline.run(source))
    stop_task = asyncio.create_task(shutdown_event.wait())

    try:
        await asyncio.wait({run_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (run_task, stop_task):
            if not task.done():
                task.cancel()
        await asyncio.gather(run_task, stop_task, return_exceptions=True)
        await pipeline.close()
        logger.info("Shutdown complete")


def run(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)

    try:
        settings = build_settings(args)
    except ConfigurationException as e:
        print(f"🔥 Fatal Error: {e}", file=sys.stderr)
        return 2

    setup_logging(settings)

    try:
        asyncio.run(main(args, settings))
    except KeyboardInterrupt:
        logger.info("👋 Watcher stopped by user.")
    return 0


if __name__ == "__main__":
    sys.exit(run())
