"""Deterministic stand-ins for the probe and sync collaborators.

Used by the test suite and handy for dry runs against a scratch tree.
"""
import logging
from typing import Callable, Dict, List, Optional, Set, Tuple, Union

from ..errors import ProbeError
from ..interfaces import DiskSpaceProbe
from .sync import LocalSyncExecutor

logger = logging.getLogger(__name__)

FreeSpaceSource = Union[int, Callable[[], int]]


class InMemoryDiskSpaceProbe(DiskSpaceProbe):
    """Free space table keyed by device.

    A value may be a callable so free space can follow filesystem changes,
    e.g. grow as releases are deleted.
    """

    def __init__(self, free_space: Optional[Dict[str, FreeSpaceSource]] = None):
        self.free_space: Dict[str, FreeSpaceSource] = dict(free_space or {})
        self.failing: Set[str] = set()
        self.calls: List[str] = []

    def set_free_space(self, device: str, value: FreeSpaceSource) -> None:
        self.free_space[device] = value

    def fail(self, device: str) -> None:
        self.failing.add(device)

    async def get_free_space(self, device: str) -> int:
        self.calls.append(device)
        if device in self.failing:
            raise ProbeError(device, "simulated probe failure")
        if device not in self.free_space:
            raise ProbeError(device, "unknown device")

        value = self.free_space[device]
        return int(value() if callable(value) else value)


class RecordingSyncExecutor(LocalSyncExecutor):
    """Local sync executor that records calls and can fake a count mismatch."""

    def __init__(self, mismatch: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.mismatch = mismatch
        self.copies: List[Tuple[str, str, str]] = []
        self.timestamps: List[Tuple[str, int]] = []
        self.wipes: List[Tuple[str, str]] = []

    async def copy(self, source_section_path: str, release_name: str, dest_section_path: str) -> None:
        self.copies.append((source_section_path, release_name, dest_section_path))
        await super().copy(source_section_path, release_name, dest_section_path)

    async def restore_timestamp(self, dest_path: str, unix_seconds: int) -> None:
        self.timestamps.append((dest_path, unix_seconds))
        await super().restore_timestamp(dest_path, unix_seconds)

    async def wipe(self, section_path: str, release_name: str) -> None:
        self.wipes.append((section_path, release_name))
        await super().wipe(section_path, release_name)

    async def counts_match(self, source_path: str, dest_path: str) -> bool:
        if self.mismatch:
            logger.warning(f"Simulated entry count mismatch between {source_path} and {dest_path}")
            return False
        return await super().counts_match(source_path, dest_path)
