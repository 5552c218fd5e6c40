from __future__ import annotations

import logging
from pathlib import Path

from solana_watcher.config import Settings


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors wallet activity lines."""

    GREY = "\x1b[90m"
    NEON_GREEN = "\x1b[92m"
    NEON_CYAN = "\x1b[96m"
    NEON_RED = "\x1b[91m"
    MAGENTA = "\x1b[95m"
    YELLOW = "\x1b[93m"
    RESET = "\x1b[0m"

    DATE_FMT = "%H:%M:%S"

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.ERROR:
            color = self.NEON_RED
        elif record.levelno >= logging.WARNING:
            color = self.YELLOW
        else:
            color = self.GREY

        msg = str(record.msg)

        if "BUY" in msg or "BALANCE INCREASE" in msg or "📈" in msg:
            color = self.NEON_GREEN
        elif "SELL" in msg or "BALANCE DECREASE" in msg or "📉" in msg:
            color = self.MAGENTA
        elif "SWAP" in msg or "🔄" in msg:
            color = self.NEON_CYAN

        formatter = logging.Formatter(f"{color}%(asctime)s %(message)s{self.RESET}", datefmt=self.DATE_FMT)
        return formatter.format(record)


def setup_logging(settings: Settings) -> None:
    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "watcher.log"

    # File Handler (Plain text, no colors)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ColoredFormatter())

    logger = logging.getLogger()
    logger.setLevel(settings.LOG_LEVEL)

    # Remove existing handlers to avoid duplicates on reload
    if logger.hasHandlers():
        logger.handlers.clear()

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    for noisy in ("httpx", "httpcore", "aiohttp", "asyncio", "solana", "solders"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
