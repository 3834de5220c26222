"""Global test configuration and fixtures."""
import os
import time
from pathlib import Path
from typing import Dict, Optional

import pytest

from finspace.config.space_config import parse_space_config
from finspace.storage.announce import AnnounceLog
from finspace.storage.archive_manager import ArchiveSectionManager
from finspace.storage.backends import InMemoryDiskSpaceProbe, RecordingSyncExecutor
from finspace.storage.incoming_manager import IncomingSectionManager
from finspace.storage.reclaimer import ArchiveCapacityReclaimer
from finspace.storage.scanner import ReleaseScanner

HOUR = 60 * 60
DAY = 24 * HOUR


def make_release(section_dir: Path, name: str, mtime: Optional[float] = None,
                 files: Optional[Dict[str, int]] = None) -> Path:
    """Create a release directory holding files of the given sizes."""
    release = section_dir / name
    release.mkdir(parents=True, exist_ok=True)
    for relative, size in (files if files is not None else {"release.bin": 1024}).items():
        target = release / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(b"x" * size)
    if mtime is not None:
        os.utime(release, (mtime, mtime))
    return release


@pytest.fixture
def now():
    return time.time()


@pytest.fixture
def layout(tmp_path):
    """Two incoming sections on one device and two archive devices."""
    dirs = {
        "movies_in": tmp_path / "incoming" / "MOVIES",
        "tv_in": tmp_path / "incoming" / "TV",
        "movies_arc1": tmp_path / "disk1" / "MOVIES",
        "movies_arc2": tmp_path / "disk2" / "MOVIES",
        "tv_arc2": tmp_path / "disk2" / "TV",
    }
    for path in dirs.values():
        path.mkdir(parents=True)
    return dirs


@pytest.fixture
def config_data(layout, tmp_path):
    return {
        "incomingDisksSections": [
            {"path": str(layout["movies_in"]), "device": "incoming-dev", "section": "MOVIES"},
            {"path": str(layout["tv_in"]), "device": "incoming-dev", "section": "TV"},
        ],
        "archiveDisksSections": [
            {"path": str(layout["movies_arc1"]), "device": "archive-dev1", "section": "MOVIES"},
            {"path": str(layout["movies_arc2"]), "device": "archive-dev2", "section": "MOVIES"},
            {"path": str(layout["tv_arc2"]), "device": "archive-dev2", "section": "TV"},
        ],
        "freeSpaceLimitGBRace": 100,
        "freeSpaceLimitGBArchive": 50,
        "archiveBufferGB": 10,
        "GLLogFile": str(tmp_path / "announce.log"),
        "syncTool": "local",
    }


@pytest.fixture
def config(config_data):
    return parse_space_config(config_data)


@pytest.fixture
def probe():
    return InMemoryDiskSpaceProbe({
        "incoming-dev": 20,
        "archive-dev1": 500,
        "archive-dev2": 800,
    })


@pytest.fixture
def sync():
    return RecordingSyncExecutor()


@pytest.fixture
def scanner():
    return ReleaseScanner()


@pytest.fixture
def announcer(config):
    return AnnounceLog(config.announce_log_file, debug=config.debug)


@pytest.fixture
def reclaimer(config, probe, scanner, announcer):
    return ArchiveCapacityReclaimer(config, probe, scanner, announcer)


@pytest.fixture
def archive_manager(config, probe, sync, reclaimer):
    return ArchiveSectionManager(config, probe, sync, reclaimer)


@pytest.fixture
def incoming_manager(config, probe, scanner, archive_manager, announcer):
    return IncomingSectionManager(config, probe, scanner, archive_manager, announcer)


def announce_lines(config):
    path = Path(config.announce_log_file)
    if not path.exists():
        return []
    return path.read_text().splitlines()
