"""Scan results and free space readings."""
from dataclasses import dataclass, field
from datetime import datetime

from finspace.config.space_config import DiskSection

BYTES_PER_MB = 1024 ** 2
BYTES_PER_GB = 1024 ** 3


@dataclass(frozen=True)
class Release:
    """One top-level directory discovered under a section.

    Releases are re-derived from the filesystem on every scan and never
    cached across rounds.
    """
    path: str
    name: str
    size_bytes: int
    modified_at: float
    owner_label: str
    section_path: str

    @property
    def size_mb(self) -> int:
        """Size in MB rounded half up, as written to the announce log."""
        return int(self.size_bytes / BYTES_PER_MB + 0.5)

    @property
    def size_gb(self) -> float:
        return self.size_bytes / BYTES_PER_GB

    @property
    def modified(self) -> datetime:
        return datetime.fromtimestamp(self.modified_at)

    def describe(self) -> str:
        return (
            f"{self.name}, Path: {self.path}, Section: {self.owner_label}, "
            f"Size: {self.size_gb:.2f} GB, Modified: {self.modified.isoformat(sep=' ', timespec='seconds')}"
        )


@dataclass(frozen=True)
class FreeSpaceReading:
    device: str
    free_gb: int
    observed_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class ArchiveDestination:
    """The archive section chosen to receive a release."""
    section: DiskSection
    free_gb: int

    @property
    def device(self) -> str:
        return self.section.device
