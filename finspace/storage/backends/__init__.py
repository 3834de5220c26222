"""
Probe and sync backend initialization module.
"""

from finspace.config.space_config import SpaceConfig
from ..interfaces import DiskSpaceProbe, SyncExecutor
from .disk_probe import DfDiskSpaceProbe, PsutilDiskSpaceProbe, parse_df_output
from .fakes import InMemoryDiskSpaceProbe, RecordingSyncExecutor
from .sync import LocalSyncExecutor, RcloneSyncExecutor


def get_disk_space_probe(config: SpaceConfig) -> DiskSpaceProbe:
    """Factory function to get the configured free space probe"""
    if config.free_space_probe == "psutil":
        return PsutilDiskSpaceProbe()
    return DfDiskSpaceProbe()


def get_sync_executor(config: SpaceConfig) -> SyncExecutor:
    """Factory function to get the configured sync executor"""
    if config.sync_tool == "local":
        return LocalSyncExecutor(max_depth=config.max_scan_depth)
    return RcloneSyncExecutor(config.copy_options, max_depth=config.max_scan_depth)


__all__ = [
    "get_disk_space_probe",
    "get_sync_executor",
    "parse_df_output",
    "DfDiskSpaceProbe",
    "PsutilDiskSpaceProbe",
    "InMemoryDiskSpaceProbe",
    "LocalSyncExecutor",
    "RcloneSyncExecutor",
    "RecordingSyncExecutor",
]
