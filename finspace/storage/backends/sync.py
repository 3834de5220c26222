"""
Sync executors that move release trees between sections.
"""

import asyncio
import logging
import os
import shlex
import shutil
from typing import List

from finspace.config.base_config import DEFAULT_MAX_SCAN_DEPTH
from ..errors import TransferError
from ..fs_utils import count_entries, remove_tree
from ..interfaces import SyncExecutor

logger = logging.getLogger(__name__)


class LocalSyncExecutor(SyncExecutor):
    """Copies release trees in-process with shutil."""

    def __init__(self, max_depth: int = DEFAULT_MAX_SCAN_DEPTH):
        self.max_depth = max_depth

    async def copy(self, source_section_path: str, release_name: str, dest_section_path: str) -> None:
        source = os.path.join(source_section_path, release_name)
        destination = os.path.join(dest_section_path, release_name)
        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, self._copytree, source, destination)
        except OSError as e:
            logger.error(f"Copy of {source} to {destination} failed: {e}")
            raise TransferError(release_name, str(e))

    @staticmethod
    def _copytree(source: str, destination: str) -> None:
        shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)

    async def restore_timestamp(self, dest_path: str, unix_seconds: int) -> None:
        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, os.utime, dest_path, (unix_seconds, unix_seconds))
        except OSError as e:
            logger.error(f"Failed to set timestamp: {e}")
            raise
        logger.debug(f"Restored timestamp of {dest_path} to {unix_seconds}")

    async def wipe(self, section_path: str, release_name: str) -> None:
        full_path = os.path.join(section_path, release_name)
        logger.info(f"Ensuring clean destination: {full_path}")
        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, remove_tree, full_path, self.max_depth)
        except OSError as e:
            logger.error(f"Failed to wipe {full_path}: {e}")
            raise

    async def counts_match(self, source_path: str, dest_path: str) -> bool:
        """Compare top-level entry counts only; nested content is not checked."""
        loop = asyncio.get_event_loop()
        try:
            source_count, dest_count = await asyncio.gather(
                loop.run_in_executor(None, count_entries, source_path),
                loop.run_in_executor(None, count_entries, dest_path),
            )
        except OSError as e:
            logger.error(f"Failed to verify file counts: {e}")
            return False

        if source_count != dest_count:
            logger.warning(
                f"Entry count mismatch: {source_path} has {source_count}, "
                f"{dest_path} has {dest_count}"
            )
        return source_count == dest_count


class RcloneSyncExecutor(LocalSyncExecutor):
    """Copies release trees with ``rclone copy``."""

    def __init__(self, copy_options: str = "", rclone_command: str = "rclone",
                 max_depth: int = DEFAULT_MAX_SCAN_DEPTH):
        super().__init__(max_depth)
        self.copy_options = copy_options
        self.rclone_command = rclone_command

    def build_command(self, source_section_path: str, release_name: str,
                      dest_section_path: str) -> List[str]:
        return [
            self.rclone_command,
            'copy',
            f"{source_section_path}/{release_name}/",
            f"{dest_section_path}/{release_name}",
            *shlex.split(self.copy_options),
        ]

    async def copy(self, source_section_path: str, release_name: str, dest_section_path: str) -> None:
        command = self.build_command(source_section_path, release_name, dest_section_path)
        logger.debug(f"Executing: {shlex.join(command)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            _, stderr = await process.communicate()
        except OSError as e:
            logger.error(f"Rclone copy failed: {e}")
            raise TransferError(release_name, str(e))

        if process.returncode != 0:
            message = stderr.decode(errors='replace').strip()
            logger.error(f"Rclone copy failed with status {process.returncode}: {message}")
            raise TransferError(release_name, message or f"rclone exited with status {process.returncode}")
