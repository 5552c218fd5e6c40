"""
Update sources feeding the pipeline.

The streaming subscription itself lives outside this package; anything that
can push decoded events into a QueueUpdateSource can drive the watcher. The
JSON-lines source replays captured events from disk.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Union

logger = logging.getLogger(__name__)

_CLOSED = object()


class QueueUpdateSource:
    """In-process source: producers call put(), the pipeline iterates."""

    def __init__(self, maxsize: int = 0):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    async def put(self, event: Dict[str, Any]) -> None:
        if self._closed:
            raise RuntimeError("update source is closed")
        await self._queue.put(event)

    def put_nowait(self, event: Dict[str, Any]) -> None:
        if self._closed:
            raise RuntimeError("update source is closed")
        self._queue.put_nowait(event)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> AsyncIterator[Dict[str, Any]]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Dict[str, Any]]:
        while True:
            event = await self._queue.get()
            if event is _CLOSED:
                return
            yield event


class JsonLinesUpdateSource:
    """Replays one JSON event per line. Unparseable lines are skipped."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def __aiter__(self) -> AsyncIterator[Dict[str, Any]]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Dict[str, Any]]:
        with open(self.path, "r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    event = json.loads(line)
                except json.JSONDecodeError as e:
                    logger.warning(f"⚠️ Skipping line {line_no} of {self.path.name}: {e}")
                    continue
                yield event
                # Let scheduled pipeline runs make progress between lines
                await asyncio.sleep(0)
