"""Archive eviction: deletes the oldest archived releases on full devices."""
import asyncio
import logging
from typing import List, Optional, Set

from finspace.config.space_config import DiskSection, SpaceConfig
from finspace.monitoring.metrics import SpaceMetricsCollector
from .announce import AnnounceLog
from .errors import FinSpaceError, ProbeError
from .fs_utils import remove_tree
from .interfaces import DiskSpaceProbe
from .scanner import ReleaseScanner

logger = logging.getLogger(__name__)


class ArchiveCapacityReclaimer:
    """Frees archive devices that fall below the archive threshold."""

    def __init__(self, config: SpaceConfig, probe: DiskSpaceProbe, scanner: ReleaseScanner,
                 announcer: AnnounceLog, metrics: Optional[SpaceMetricsCollector] = None):
        self.config = config
        self.probe = probe
        self.scanner = scanner
        self.announcer = announcer
        self.metrics = metrics or SpaceMetricsCollector()

    async def reclaim_all(self) -> bool:
        """Evict releases on every archive device below the threshold.

        Returns:
            bool: True if at least one release was deleted, or would have been in debug mode
        """
        logger.info("Checking all archive disks for space cleanup...")
        cleanup_performed = False

        for device, sections in self.config.archive_devices().items():
            try:
                if await self.reclaim_device(device, sections):
                    cleanup_performed = True
            except ProbeError as e:
                self.metrics.record_probe_error(device)
                logger.error(f"Skipping cleanup of device ({device}): {e.message}")

        return cleanup_performed

    async def reclaim_device(self, device: str, sections: List[DiskSection]) -> bool:
        """Delete the oldest releases on one device until the threshold is met.

        Every iteration deletes one release or leaves the loop, so the loop
        ends once the device runs out of candidates.
        """
        limit = self.config.free_space_limit_gb_archive
        free_space = await self.probe.get_free_space(device)
        self.metrics.record_free_space(device, 'archive', free_space)
        logger.info(f"Free space on device ({device}): {free_space} GB")

        if free_space >= limit:
            logger.info(f"Device ({device}) has sufficient free space ({free_space} GB). Skipping cleanup.")
            return False

        cleanup_performed = False
        # Dry-run bookkeeping: releases that would already be gone
        planned: Set[str] = set()
        projected_free = float(free_space)

        while projected_free < limit:
            release = await self.scanner.find_oldest(sections, exclude=planned)
            if release is None:
                logger.info(
                    f"No valid releases found for cleanup on device ({device}); "
                    f"{projected_free:.0f} GB free of {limit} GB required."
                )
                break

            logger.info(
                f"Deleting oldest release: {release.name} (Section: {release.owner_label}, "
                f"Path: {release.path}, Size: {release.size_mb} MB, Date: {release.modified})."
            )
            self.announcer.archive_deletion(release)

            if self.config.debug:
                logger.info(f"DEBUG: Would delete {release.name} from {release.path}")
                cleanup_performed = True
                planned.add(release.path)
                projected_free += release.size_gb
                continue

            loop = asyncio.get_event_loop()
            try:
                await loop.run_in_executor(None, remove_tree, release.path, self.config.max_scan_depth)
            except (OSError, FinSpaceError) as e:
                logger.error(f"Error deleting release {release.name} on device ({device}): {e}")
                break

            cleanup_performed = True
            self.metrics.record_deletion('archive', release.owner_label, release.size_bytes)

            try:
                free_space = await self.probe.get_free_space(device)
            except ProbeError as e:
                self.metrics.record_probe_error(device)
                logger.error(f"Deleted {release.name} but could not re-check device ({device}): {e.message}")
                break
            projected_free = float(free_space)
            self.metrics.record_free_space(device, 'archive', free_space)
            logger.info(
                f"Successfully deleted {release.name}. Updated free space on device ({device}): {free_space} GB."
            )

        return cleanup_performed
