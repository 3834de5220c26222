"""
Release discovery: finds the oldest release across a set of sections.
"""
import asyncio
import logging
import os
import re
import time
from typing import Callable, Collection, Iterable, List, Optional

from finspace.config.base_config import DEFAULT_MAX_SCAN_DEPTH
from finspace.config.space_config import DiskSection
from .errors import ScanError
from .fs_utils import directory_size
from .models import Release

logger = logging.getLogger(__name__)

DATED_NAME = re.compile(r'^\d+$')
DATED_MIN_AGE_SECONDS = 24 * 60 * 60


class ReleaseScanner:
    """Scans section directories for releases.

    Sections flagged ``dated`` only yield numerically named directories that
    are more than a day old, which protects content still being written.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_SCAN_DEPTH,
                 clock: Callable[[], float] = time.time):
        self.max_depth = max_depth
        self._clock = clock

    async def find_oldest(self, sections: Iterable[DiskSection],
                          exclude: Collection[str] = ()) -> Optional[Release]:
        """Return the release with the earliest modification time.

        Sections that cannot be read are logged and skipped. On equal
        timestamps the release found first wins.
        """
        oldest: Optional[Release] = None

        for section in sections:
            logger.debug(f"Checking section: {section.label} at path: {section.path}")
            try:
                candidates = await self.scan_section(section)
            except ScanError as e:
                logger.error(e.message)
                continue

            candidates = [c for c in candidates if c.path not in exclude]
            if not candidates:
                logger.debug(f"No valid releases found in section: {section.label}")
                continue

            section_oldest = candidates[0]
            logger.debug(f"Oldest release in section {section.label}: {section_oldest.describe()}")

            if oldest is None or section_oldest.modified_at < oldest.modified_at:
                oldest = section_oldest

        if oldest:
            logger.info(f"Global oldest release: {oldest.describe()}")
        else:
            logger.info("No valid releases found across all sections.")
        return oldest

    async def scan_section(self, section: DiskSection) -> List[Release]:
        """List the eligible releases of one section, oldest first.

        Raises:
            ScanError: if the section directory cannot be listed
        """
        loop = asyncio.get_event_loop()
        try:
            names = await loop.run_in_executor(None, self._list_subdirectories, section.path)
        except OSError as e:
            raise ScanError(section.path, str(e))

        if section.dated:
            names = [name for name in names if DATED_NAME.match(name)]

        if not names:
            logger.debug(f"No releases found in section: {section.label}")
            return []

        results = await asyncio.gather(*[
            loop.run_in_executor(None, self._describe, section, name)
            for name in names
        ])

        releases = [release for release in results if release is not None]
        releases.sort(key=lambda release: release.modified_at)
        return releases

    @staticmethod
    def _list_subdirectories(path: str) -> List[str]:
        with os.scandir(path) as entries:
            return [entry.name for entry in entries if entry.is_dir(follow_symlinks=False)]

    def _describe(self, section: DiskSection, name: str) -> Optional[Release]:
        """Stat and size one directory; None if it is skipped or unreadable."""
        path = section.release_path(name)
        try:
            modified_at = os.stat(path, follow_symlinks=False).st_mtime
        except OSError as e:
            logger.warning(
                f"Error processing directory: {name} in section: {section.label}. Error: {e}"
            )
            return None

        if section.dated and self._clock() - modified_at <= DATED_MIN_AGE_SECONDS:
            logger.debug(
                f"Skipping directory: {name} in section: {section.label} "
                f"because it is less than 1 day old."
            )
            return None

        return Release(
            path=path,
            name=name,
            size_bytes=directory_size(path, self.max_depth),
            modified_at=modified_at,
            owner_label=section.label,
            section_path=section.path,
        )
