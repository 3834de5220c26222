"""
Round-robin space management loop.
"""
import asyncio
import logging
import time
from datetime import datetime
from typing import Awaitable, Callable, Optional

from finspace.config.space_config import SpaceConfig
from finspace.monitoring.metrics import SpaceMetricsCollector
from finspace.storage.announce import AnnounceLog
from finspace.storage.archive_manager import ArchiveSectionManager
from finspace.storage.backends import get_disk_space_probe, get_sync_executor
from finspace.storage.errors import ProbeError
from finspace.storage.incoming_manager import IncomingSectionManager
from finspace.storage.interfaces import DiskSpaceProbe, SyncExecutor
from finspace.storage.reclaimer import ArchiveCapacityReclaimer
from finspace.storage.scanner import ReleaseScanner

logger = logging.getLogger(__name__)


class SpaceOrchestrator:
    """Visits every incoming section, then every archive section, forever."""

    def __init__(self, config: SpaceConfig, probe: DiskSpaceProbe,
                 incoming_manager: IncomingSectionManager,
                 archive_manager: ArchiveSectionManager,
                 metrics: Optional[SpaceMetricsCollector] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.config = config
        self.probe = probe
        self.incoming_manager = incoming_manager
        self.archive_manager = archive_manager
        self.metrics = metrics or SpaceMetricsCollector()
        self._sleep = sleep

        # Round bookkeeping for the status server
        self.rounds_completed = 0
        self.last_round_started: Optional[datetime] = None
        self.last_round_finished: Optional[datetime] = None
        self.last_error: Optional[str] = None

    @classmethod
    def build(cls, config: SpaceConfig, probe: Optional[DiskSpaceProbe] = None,
              sync: Optional[SyncExecutor] = None,
              sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> "SpaceOrchestrator":
        """Wire up the full component graph from a configuration."""
        probe = probe or get_disk_space_probe(config)
        sync = sync or get_sync_executor(config)
        metrics = SpaceMetricsCollector()
        scanner = ReleaseScanner(max_depth=config.max_scan_depth)
        announcer = AnnounceLog(config.announce_log_file, debug=config.debug)

        reclaimer = ArchiveCapacityReclaimer(config, probe, scanner, announcer, metrics)
        archive_manager = ArchiveSectionManager(config, probe, sync, reclaimer, metrics)
        incoming_manager = IncomingSectionManager(
            config, probe, scanner, archive_manager, announcer, metrics
        )
        return cls(config, probe, incoming_manager, archive_manager, metrics, sleep)

    async def run_round(self) -> bool:
        """Run one pass over all sections.

        Returns:
            bool: True if any release was deleted or migrated
        """
        logger.info("Starting round-robin space management loop...")
        space_freed = False

        for section in self.config.incoming_sections:
            try:
                if await self.incoming_manager.manage(section):
                    space_freed = True
            except ProbeError as e:
                self.metrics.record_probe_error(section.device)
                logger.error(f"Skipping incoming section ({section.label}) this round: {e.message}")

        reclaimed_this_round = False
        for section in self.config.archive_sections:
            if not section.path or not section.device:
                logger.error(f"Skipping invalid archive section configuration: {section}")
                continue

            try:
                reading = await self.probe.read(section.device)
            except ProbeError as e:
                self.metrics.record_probe_error(section.device)
                logger.error(f"Skipping archive section ({section.label}) this round: {e.message}")
                continue

            free_space = reading.free_gb
            self.metrics.record_free_space(section.device, 'archive', free_space)
            logger.info(
                f"Free space on disk ({section.device}): {free_space} GB (Section: {section.label})"
            )

            if free_space >= self.config.free_space_limit_gb_archive:
                logger.info(
                    f"Archive section ({section.label}) has sufficient space: {free_space} GB. "
                    f"No cleanup required."
                )
                continue

            logger.warning(
                f"Archive section ({section.label}) has insufficient space: {free_space} GB. "
                f"Initiating cleanup..."
            )
            # One reclaim pass already covers every archive device
            if reclaimed_this_round:
                logger.info("Archive cleanup already ran this round.")
                continue

            reclaimed_this_round = True
            if await self.archive_manager.manage(None):
                space_freed = True

        return space_freed

    async def run_forever(self, max_rounds: Optional[int] = None) -> None:
        """Repeat rounds until cancelled, or max_rounds have been attempted.

        An unexpected error aborts the current round and the loop waits
        ``error_wait_minutes`` before starting a fresh one.
        """
        logger.info("Starting fin-space management...")
        attempted = 0

        while max_rounds is None or attempted < max_rounds:
            attempted += 1
            started = time.monotonic()
            self.last_round_started = datetime.now()
            try:
                space_freed = await self.run_round()
            except Exception as e:
                self.last_error = f"{type(e).__name__}: {e}"
                self.metrics.record_round_error()
                logger.exception(f"Unexpected error: {e}")
                wait_minutes = self.config.error_wait_minutes
                logger.error(f"Restarting loop in {wait_minutes} minutes...")
            else:
                self.rounds_completed += 1
                self.last_round_finished = datetime.now()
                self.metrics.record_round(time.monotonic() - started, time.time())
                logger.info(f"Round complete; space freed: {space_freed}")
                wait_minutes = self.config.wait_time_minutes
                logger.info(f"Waiting {wait_minutes} minutes before restarting the loop...")

            if max_rounds is not None and attempted >= max_rounds:
                break
            await self._sleep(wait_minutes * 60)
