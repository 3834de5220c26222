"""Interfaces to the collaborators the space engine drives."""

from abc import ABC, abstractmethod

from .models import FreeSpaceReading


class DiskSpaceProbe(ABC):
    """Reports free space for a device."""

    @abstractmethod
    async def get_free_space(self, device: str) -> int:
        """Free space on the device in whole gigabytes.

        Raises:
            ProbeError: if the free space cannot be determined
        """
        pass

    async def read(self, device: str) -> FreeSpaceReading:
        """Take a timestamped free space reading."""
        return FreeSpaceReading(device=device, free_gb=await self.get_free_space(device))


class SyncExecutor(ABC):
    """Moves release trees between sections."""

    @abstractmethod
    async def copy(self, source_section_path: str, release_name: str, dest_section_path: str) -> None:
        """Copy source_section_path/release_name to dest_section_path/release_name."""
        pass

    @abstractmethod
    async def restore_timestamp(self, dest_path: str, unix_seconds: int) -> None:
        """Set the modification time of a path."""
        pass

    @abstractmethod
    async def wipe(self, section_path: str, release_name: str) -> None:
        """Recursively remove section_path/release_name if it exists."""
        pass

    @abstractmethod
    async def counts_match(self, source_path: str, dest_path: str) -> bool:
        """Compare the number of top-level entries of two directories."""
        pass
