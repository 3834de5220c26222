"""Announce log writer.

Each migration or deletion is written as one line that an external
notification bot parses positionally, e.g.::

    Mon Jan 06 14:03:11 2025 TSM: "Some.Release" "4312" "40" "/archive/x" "900" "x"

The tag layouts below must not change.
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from .models import Release

logger = logging.getLogger(__name__)

ANNOUNCE_DATE_FORMAT = "%a %b %d %H:%M:%S %Y"

TAG_MIGRATE = "TSM"
TAG_DELETE_INCOMING = "TSD"
TAG_DELETE_ARCHIVE = "TDELA"


def format_announcement(tag: str, *fields) -> str:
    quoted = " ".join(f'"{value}"' for value in fields)
    return f"{tag}: {quoted}"


class AnnounceLog:
    """Appends announcement lines to the announce log file."""

    def __init__(self, path: Optional[str], debug: bool = False,
                 clock: Callable[[], datetime] = datetime.now):
        self.path = path
        self.debug = debug
        self._clock = clock

    def announce(self, text: str) -> Optional[str]:
        """Write one line; returns the line, or None in dry-run / when disabled."""
        line = f"{self._clock().strftime(ANNOUNCE_DATE_FORMAT)} {text}"

        if not self.path or self.debug:
            logger.debug(f"Would log to announce log: {line}")
            return None

        try:
            with open(self.path, 'a', encoding='utf-8') as handle:
                handle.write(line + '\n')
        except OSError as e:
            logger.error(f"Failed to write to announce log {self.path}: {e}")
            return None

        logger.debug(f"Logged to announce log: {line}")
        return line

    def migration(self, release: Release, source_free_gb: int,
                  dest_path: str, dest_free_gb: int) -> Optional[str]:
        return self.announce(format_announcement(
            TAG_MIGRATE,
            release.name,
            release.size_mb,
            source_free_gb,
            dest_path,
            dest_free_gb,
            release.owner_label,
        ))

    def incoming_deletion(self, release: Release, free_gb: int) -> Optional[str]:
        # Consumers read six fields: free space and label appear twice
        return self.announce(format_announcement(
            TAG_DELETE_INCOMING,
            release.name,
            release.size_mb,
            free_gb,
            release.owner_label,
            free_gb,
            release.owner_label,
        ))

    def archive_deletion(self, release: Release) -> Optional[str]:
        return self.announce(format_announcement(
            TAG_DELETE_ARCHIVE,
            release.name,
            release.size_mb,
            release.owner_label,
        ))
