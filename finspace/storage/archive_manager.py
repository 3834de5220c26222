"""
Archive placement: moves incoming releases onto the archive device with the
most free space, and delegates archive upkeep to the reclaimer.
"""
import asyncio
import logging
import os
from typing import Dict, Optional

from finspace.config.space_config import DiskSection, SpaceConfig
from finspace.monitoring.metrics import SpaceMetricsCollector
from .errors import FinSpaceError
from .interfaces import DiskSpaceProbe, SyncExecutor
from .models import ArchiveDestination, Release
from .reclaimer import ArchiveCapacityReclaimer

logger = logging.getLogger(__name__)


class ArchiveSectionManager:
    """Places releases into the archive tier.

    The destination device is the archive device with the most free space
    overall. The release label only has to match some archive section to
    prove an archive tier exists for it; it does not restrict the device.
    """

    def __init__(self, config: SpaceConfig, probe: DiskSpaceProbe, sync: SyncExecutor,
                 reclaimer: ArchiveCapacityReclaimer,
                 metrics: Optional[SpaceMetricsCollector] = None):
        self.config = config
        self.probe = probe
        self.sync = sync
        self.reclaimer = reclaimer
        self.metrics = metrics or SpaceMetricsCollector()

    async def manage(self, release: Optional[Release] = None) -> bool:
        """Place a release, or reclaim archive space when called without one."""
        if release is None:
            return await self.reclaim()
        return await self.place(release)

    async def reclaim(self) -> bool:
        return await self.reclaimer.reclaim_all()

    async def select_destination(self, label: Optional[str] = None) -> Optional[ArchiveDestination]:
        """Pick the archive device with the most free space.

        Each device is probed once, in configuration order; ties go to the
        device seen first. Devices whose probe fails are skipped. On the
        chosen device a section carrying ``label`` is preferred, otherwise
        the device's first section is used.
        """
        best_device = None
        best_free = None
        device_sections: Dict[str, list] = self.config.archive_devices()

        for device in device_sections:
            try:
                free_space = await self.probe.get_free_space(device)
            except FinSpaceError as e:
                self.metrics.record_probe_error(device)
                logger.error(f"Error checking archive device {device}: {e.message}")
                continue

            self.metrics.record_free_space(device, 'archive', free_space)
            if best_free is None or free_space > best_free:
                best_device = device
                best_free = free_space

        if best_device is None:
            return None

        sections = device_sections[best_device]
        section = next((s for s in sections if s.label == label), sections[0])
        return ArchiveDestination(section=section, free_gb=best_free)

    def has_room(self, destination: Optional[ArchiveDestination], release: Release) -> bool:
        """Whether the destination can take the release plus the safety buffer."""
        if destination is None:
            logger.warning("No archive section with free space information found.")
            return False

        required = release.size_gb + self.config.archive_buffer_gb
        if destination.free_gb < required:
            logger.warning(
                f"Even the disk with the most free space ({destination.section.path}) does not "
                f"have enough room. Required: {required:.0f} GB, Available: {destination.free_gb} GB."
            )
            return False
        return True

    async def place(self, release: Release) -> bool:
        """Migrate an incoming release into the archive.

        The source is only deleted after the copy has been verified, so any
        failure leaves the incoming copy in place.

        Returns:
            bool: True once the release lives in the archive and the source is gone
        """
        incoming_section = self.config.find_incoming_section(release.path, release.name)
        if incoming_section is None:
            logger.error(f"No matching incoming section found for release path: {release.path}")
            return False

        if not self.config.archive_targets_for(incoming_section.label):
            logger.error(f"No matching archive section found for release category: {incoming_section.label}")
            return False

        destination = await self.select_destination(incoming_section.label)
        if not self.has_room(destination, release):
            return False

        return await self._migrate(release, incoming_section, destination.section)

    async def _migrate(self, release: Release, source: DiskSection, target: DiskSection) -> bool:
        source_path = source.release_path(release.name)
        dest_path = target.release_path(release.name)

        logger.info(f"[ARCHIVING] [MOVING] :: {release.name} from [{source.label}] to [{target.label}] ({target.path})")

        if self.config.debug:
            logger.info(f"DEBUG: Would archive {source_path} to {dest_path}")
            return True

        try:
            await self.sync.wipe(target.path, release.name)
            await self.sync.copy(source.path, release.name, target.path)

            if not await self.sync.counts_match(source_path, dest_path):
                self.metrics.record_integrity_failure(release.owner_label)
                logger.error(f"File count mismatch after sync for: {release.name}; source kept at {source_path}")
                return False

            loop = asyncio.get_event_loop()
            source_stats = await loop.run_in_executor(None, os.stat, source_path)
            await self.sync.restore_timestamp(dest_path, int(source_stats.st_mtime))

            await self.sync.wipe(source.path, release.name)
            logger.info(f"Source directory deleted: {source_path}")
        except (OSError, FinSpaceError) as e:
            logger.error(f"Error archiving release: {release.name} to {target.path}: {e}")
            return False

        self.metrics.record_migration(release.owner_label, release.size_bytes)
        logger.info(f"Successfully archived {release.name} to {dest_path}")
        return True
