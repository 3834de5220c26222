"""
Free space probes backed by ``df`` and psutil.
"""

import asyncio
import logging
import os
from typing import Optional

import psutil

from ..errors import ProbeError
from ..interfaces import DiskSpaceProbe
from ..models import BYTES_PER_GB

logger = logging.getLogger(__name__)


def parse_df_output(output: str, device: str) -> int:
    """Extract free gigabytes from ``df -BG`` output.

    The second line's fourth column holds the available space with a
    trailing unit letter, e.g. ``512G``.

    Raises:
        ProbeError: if the output does not have that shape
    """
    lines = output.strip().split('\n')
    if len(lines) < 2:
        raise ProbeError(device, "unexpected output from df command")

    fields = lines[1].split()
    if len(fields) < 4:
        raise ProbeError(device, f"unexpected df line: {lines[1]!r}")

    value = fields[3]
    if value[-1:].isalpha():
        value = value[:-1]
    if not (value.isascii() and value.isdigit()):
        raise ProbeError(device, f"unparseable free space value: {fields[3]!r}")
    return int(value)


class DfDiskSpaceProbe(DiskSpaceProbe):
    """Queries free space with ``df -BG <device>``."""

    def __init__(self, df_command: str = "df"):
        self.df_command = df_command

    async def get_free_space(self, device: str) -> int:
        try:
            process = await asyncio.create_subprocess_exec(
                self.df_command, '-BG', device,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await process.communicate()
        except OSError as e:
            raise ProbeError(device, str(e))

        error_output = stderr.decode(errors='replace').strip()
        if process.returncode != 0 or error_output:
            raise ProbeError(device, error_output or f"df exited with status {process.returncode}")

        free_gb = parse_df_output(stdout.decode(errors='replace'), device)
        logger.debug(f"Free space on {device}: {free_gb} GB")
        return free_gb


class PsutilDiskSpaceProbe(DiskSpaceProbe):
    """Reads free space through psutil.

    A block device such as ``/dev/sdb1`` is resolved to the mount point it is
    mounted on; any other value is treated as a path on the filesystem.
    """

    async def get_free_space(self, device: str) -> int:
        loop = asyncio.get_event_loop()
        try:
            return await loop.run_in_executor(None, self._free_space, device)
        except (OSError, RuntimeError) as e:
            raise ProbeError(device, str(e))

    def _free_space(self, device: str) -> int:
        target = device
        if device.startswith('/dev/'):
            mountpoint = self._find_mountpoint(device)
            if mountpoint is None:
                raise ProbeError(device, "device is not mounted")
            target = mountpoint
        usage = psutil.disk_usage(target)
        return usage.free // BYTES_PER_GB

    @staticmethod
    def _find_mountpoint(device: str) -> Optional[str]:
        resolved = os.path.realpath(device)
        for partition in psutil.disk_partitions(all=True):
            if partition.device in (device, resolved):
                return partition.mountpoint
        return None
