"""
Wallet activity pipeline.

update event -> normalize -> (signature?) fetch -> extract + classify
            -> resolve metadata -> enrich -> present

Every event runs as its own asyncio task, so runs overlap and may finish out
of arrival order. An optional semaphore caps how many run at once.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Optional, Set

from solana_watcher.config import Settings, WatchConfig
from solana_watcher.core.activity_classifier import ActivityClassifier
from solana_watcher.core.cache import WatcherCaches
from solana_watcher.core.enricher import Enricher
from solana_watcher.core.ledger import LedgerClient
from solana_watcher.core.metadata import MetadataResolver
from solana_watcher.core.models import AccountUpdate, EnrichedRecord
from solana_watcher.core.normalizer import AccountUpdateNormalizer
from solana_watcher.core.presenter import ReportPresenter
from solana_watcher.core.price_client import JupiterPriceClient
from solana_watcher.core.transaction_fetcher import TransactionFetcher
from solana_watcher.core.transfer_extractor import TransferExtractor

logger = logging.getLogger("solana_watcher.pipeline")


class WalletActivityPipeline:
    def __init__(
        self,
        settings: Settings,
        caches: WatcherCaches,
        normalizer: AccountUpdateNormalizer,
        fetcher: TransactionFetcher,
        enricher: Enricher,
        presenter: ReportPresenter,
        tracked: Optional[Set[str]] = None,
        resources: tuple = (),
    ) -> None:
        self.settings = settings
        self.caches = caches
        self.normalizer = normalizer
        self.fetcher = fetcher
        self.enricher = enricher
        self.presenter = presenter
        self.tracked = tracked or set()
        self._resources = resources
        self._semaphore = (
            asyncio.Semaphore(settings.MAX_CONCURRENT_RUNS) if settings.MAX_CONCURRENT_RUNS > 0 else None
        )
        self._tasks: Set[asyncio.Task] = set()
        self.stats = {"events": 0, "records": 0, "basic_updates": 0, "duplicates": 0, "errors": 0}

    @classmethod
    def build(
        cls,
        settings: Settings,
        watch_config: Optional[WatchConfig] = None,
        presenter: Optional[ReportPresenter] = None,
    ) -> "WalletActivityPipeline":
        """Wire the production collaborators from settings."""
        watch_config = watch_config or WatchConfig()
        caches = WatcherCaches.from_settings(settings)
        ledger = LedgerClient(settings)
        prices = JupiterPriceClient(settings, caches)
        resolver = MetadataResolver(settings, ledger, prices, caches)

        return cls(
            settings=settings,
            caches=caches,
            normalizer=AccountUpdateNormalizer(caches),
            fetcher=TransactionFetcher(ledger, TransferExtractor(resolver), ActivityClassifier()),
            enricher=Enricher(resolver, prices, caches, watch_config.risk),
            presenter=presenter or ReportPresenter(json_output=settings.OUTPUT_JSON),
            tracked=watch_config.active_addresses(),
            resources=(resolver, prices, ledger),
        )

    async def handle_event(self, event: Any) -> Optional[EnrichedRecord]:
        """Run one event through the pipeline. Never raises."""
        self.stats["events"] += 1

        update = self.normalizer.normalize(event)
        if update is None:
            return None

        if self.tracked and update.address not in self.tracked:
            logger.debug(f"Ignoring update for untracked address {update.address[:8]}")
            return None

        claimed = False
        try:
            self.normalizer.detect_balance_change(update)

            if not update.signature:
                self._present_basic(update)
                return None

            if self.settings.DEDUP_SIGNATURES:
                if self.caches.seen_signature(update.signature):
                    self.stats["duplicates"] += 1
                    logger.debug(f"Duplicate signature {update.signature[:16]}, skipping")
                    return None
                claimed = True

            record = await self.fetcher.fetch(update.signature, update.address)
            if record is None:
                # Not found or lookup failed: a redelivery may still succeed
                if claimed:
                    self.caches.forget_signature(update.signature)
                return None

            enriched = await self.enricher.enrich(record, update)
            self.presenter.present(enriched)
            self.stats["records"] += 1
            return enriched

        except Exception as e:
            self.stats["errors"] += 1
            if claimed:
                self.caches.forget_signature(update.signature)
            logger.error(f"❌ Error processing update for {update.address[:8]}: {e}", exc_info=True)
            self._present_basic(update)
            return None

    def _present_basic(self, update: AccountUpdate) -> None:
        self.stats["basic_updates"] += 1
        self.presenter.present_balance(update)

    async def _guarded(self, event: Any) -> Optional[EnrichedRecord]:
        if self._semaphore is None:
            return await self.handle_event(event)
        async with self._semaphore:
            return await self.handle_event(event)

    def submit(self, event: Any) -> asyncio.Task:
        """Schedule an event as an independent task."""
        task = asyncio.create_task(self._guarded(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run(self, source: AsyncIterator[Any]) -> None:
        """Consume a source until it is exhausted, then wait for in-flight runs."""
        async for event in source:
            self.submit(event)
        await self.drain()

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self.drain()

        for resource in self._resources:
            try:
                await resource.close()
            except Exception as e:
                logger.warning(f"Error closing {type(resource).__name__}: {e}")

        self.caches.print_stats()
        logger.info(
            f"Pipeline stopped: {self.stats['events']} events, {self.stats['records']} records, "
            f"{self.stats['duplicates']} duplicates, {self.stats['errors']} errors"
        )
