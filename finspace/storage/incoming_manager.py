"""
Incoming section management: frees staging space by archiving or deleting
the oldest pending release.
"""
import asyncio
import logging
from typing import Optional

from finspace.config.space_config import DiskSection, SpaceConfig
from finspace.monitoring.metrics import SpaceMetricsCollector
from .announce import AnnounceLog
from .archive_manager import ArchiveSectionManager
from .errors import FinSpaceError, ProbeError
from .fs_utils import is_directory_empty, remove_tree
from .interfaces import DiskSpaceProbe
from .models import Release
from .scanner import ReleaseScanner

logger = logging.getLogger(__name__)


class IncomingSectionManager:
    """Acts on one incoming section whose device runs low on space.

    The release handled is always the oldest one across *all* incoming
    sections; the section argument only decides which device is checked.
    """

    def __init__(self, config: SpaceConfig, probe: DiskSpaceProbe, scanner: ReleaseScanner,
                 archive_manager: ArchiveSectionManager, announcer: AnnounceLog,
                 metrics: Optional[SpaceMetricsCollector] = None):
        self.config = config
        self.probe = probe
        self.scanner = scanner
        self.archive_manager = archive_manager
        self.announcer = announcer
        self.metrics = metrics or SpaceMetricsCollector()

    async def manage(self, section: DiskSection) -> bool:
        """Delete or migrate the oldest incoming release if the device is low.

        Returns:
            bool: True if a release was deleted or migrated
        """
        logger.info(f"Checking incoming section: {section.label}")

        free_space = await self._free_space(section.device)
        limit = self.config.free_space_limit_gb_race
        if free_space >= limit:
            logger.info(
                f"Free space ({free_space} GB) is above the limit ({limit} GB). No action required."
            )
            return False

        release = await self.scanner.find_oldest(self.config.incoming_sections)
        if release is None:
            logger.info(f"No valid releases found to manage in section: {section.label}.")
            return False

        loop = asyncio.get_event_loop()
        if await loop.run_in_executor(None, is_directory_empty, release.path):
            return await self._delete_empty(release, section)

        logger.debug(
            f"Oldest release to manage: {release.path} "
            f"(Section: {release.owner_label}, Size: {release.size_mb} MB)"
        )

        if self.config.archive_targets_for(release.owner_label):
            return await self._archive(release, section, free_space)
        return await self._delete(release, section, free_space)

    async def _free_space(self, device: str) -> int:
        free_space = await self.probe.get_free_space(device)
        self.metrics.record_free_space(device, 'incoming', free_space)
        logger.debug(f"Current free space on device ({device}): {free_space} GB")
        return free_space

    async def _remove(self, release: Release) -> None:
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, remove_tree, release.path, self.config.max_scan_depth)

    async def _report_free_space(self, section: DiskSection) -> None:
        try:
            free_space = await self._free_space(section.device)
        except ProbeError as e:
            self.metrics.record_probe_error(section.device)
            logger.error(f"Could not re-check free space after acting on {section.label}: {e.message}")
            return
        limit = self.config.free_space_limit_gb_race
        logger.info(f"Updated free space on device ({section.device}): {free_space} GB")
        if free_space >= limit:
            logger.info(f"Free space ({free_space} GB) has reached or exceeded the limit ({limit} GB).")

    async def _delete_empty(self, release: Release, section: DiskSection) -> bool:
        logger.info(f"Release directory is empty: {release.path}. Deleting...")
        if self.config.debug:
            logger.info(f"DEBUG: Would delete empty directory: {release.path}")
            return True

        try:
            await self._remove(release)
        except (OSError, FinSpaceError) as e:
            logger.error(f"Error deleting empty directory: {release.path}. Error: {e}")
            return False

        self.metrics.record_deletion('incoming', release.owner_label, 0)
        await self._report_free_space(section)
        return True

    async def _archive(self, release: Release, section: DiskSection, free_space: int) -> bool:
        destination = await self.archive_manager.select_destination(release.owner_label)
        if not self.archive_manager.has_room(destination, release):
            return False

        self.announcer.migration(release, free_space, destination.section.path, destination.free_gb)
        logger.debug(f"[ARCHIVING] :: {release.name} to {destination.section.path}...")

        if self.config.debug:
            logger.info(f"DEBUG: Would archive {release.path} to {destination.section.path}")
            return True

        if not await self.archive_manager.place(release):
            logger.error(f"Error moving release: {release.path}; it stays in {release.section_path}")
            return False

        await self._report_free_space(section)
        return True

    async def _delete(self, release: Release, section: DiskSection, free_space: int) -> bool:
        self.announcer.incoming_deletion(release, free_space)
        logger.info(f"[DELETE] :: {release.name} :: [{release.size_mb} MB] from [{release.owner_label}]")

        if self.config.debug:
            logger.info(
                f"DEBUG: Would delete release: {release.name} from section: {release.owner_label}"
            )
            return True

        try:
            await self._remove(release)
        except (OSError, FinSpaceError) as e:
            logger.error(f"Error deleting release: {release.path}. Error: {e}")
            return False

        self.metrics.record_deletion('incoming', release.owner_label, release.size_bytes)
        await self._report_free_space(section)
        return True
