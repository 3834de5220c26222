"""Space management configuration.

The configuration is read once from a JSON file and turned into an
immutable :class:`SpaceConfig` value that every component receives in its
constructor.
"""

import json
import logging
import os
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from finspace.config.base_config import (
    CONFIG_PATH,
    DEFAULT_ERROR_WAIT_MINUTES,
    DEFAULT_MAX_SCAN_DEPTH,
    DEFAULT_WAIT_TIME_MINUTES,
)
from finspace.storage.errors import ConfigError

logger = logging.getLogger(__name__)

SYNC_TOOLS = ('rclone', 'local')
FREE_SPACE_PROBES = ('df', 'psutil')


class SectionRole(Enum):
    INCOMING = "incoming"
    ARCHIVE = "archive"


@dataclass(frozen=True)
class DiskSection:
    """A configured storage location."""
    path: str
    device: str
    label: str
    role: SectionRole
    dated: bool = False

    def release_path(self, name: str) -> str:
        return os.path.join(self.path, name)


@dataclass(frozen=True)
class SpaceConfig:
    incoming_sections: Tuple[DiskSection, ...]
    archive_sections: Tuple[DiskSection, ...]
    free_space_limit_gb_race: int
    free_space_limit_gb_archive: int
    archive_buffer_gb: int = 0
    wait_time_minutes: float = DEFAULT_WAIT_TIME_MINUTES
    error_wait_minutes: float = DEFAULT_ERROR_WAIT_MINUTES
    debug: bool = False
    log_file: Optional[str] = None
    announce_log_file: Optional[str] = None
    copy_options: str = ""
    sync_tool: str = "rclone"
    free_space_probe: str = "df"
    metrics_host: str = "0.0.0.0"
    metrics_port: Optional[int] = None
    max_scan_depth: int = DEFAULT_MAX_SCAN_DEPTH
    archive_targets: Mapping[str, Tuple[DiskSection, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def archive_targets_for(self, label: str) -> Tuple[DiskSection, ...]:
        """Archive sections that accept content of the given label."""
        return self.archive_targets.get(label, ())

    def find_incoming_section(self, release_path: str, release_name: str) -> Optional[DiskSection]:
        """Find the incoming section a release was discovered under."""
        for section in self.incoming_sections:
            if release_path == section.release_path(release_name):
                return section
        return None

    def archive_devices(self) -> Dict[str, List[DiskSection]]:
        """Archive sections grouped by device, in configuration order."""
        devices: Dict[str, List[DiskSection]] = {}
        for section in self.archive_sections:
            devices.setdefault(section.device, []).append(section)
        return devices

    def with_overrides(self, debug: Optional[bool] = None,
                       metrics_port: Optional[int] = None) -> "SpaceConfig":
        """Return a copy with command line / environment overrides applied."""
        changes: Dict[str, Any] = {}
        if debug:
            changes['debug'] = True
        if metrics_port is not None:
            changes['metrics_port'] = metrics_port
        return replace(self, **changes) if changes else self


def build_archive_targets(incoming: Tuple[DiskSection, ...],
                          archive: Tuple[DiskSection, ...]) -> Mapping[str, Tuple[DiskSection, ...]]:
    """Map every incoming label to the archive sections sharing it.

    Labels without an archive tier map to an empty tuple, meaning their
    releases are deleted rather than migrated.
    """
    targets: Dict[str, Tuple[DiskSection, ...]] = {}
    for section in incoming:
        if section.label not in targets:
            targets[section.label] = tuple(a for a in archive if a.label == section.label)

    incoming_labels = set(targets)
    for section in archive:
        if section.label not in incoming_labels:
            logger.info(
                f"Archive section {section.path} ({section.label}) has no incoming "
                f"counterpart; it is only subject to eviction"
            )
    return MappingProxyType(targets)


def _parse_sections(raw: Any, role: SectionRole, key: str) -> Tuple[DiskSection, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ConfigError(f"'{key}' must be a list of sections")

    sections = []
    seen_paths = set()
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ConfigError(f"{key}[{index}] must be an object, got {entry!r}")
        for required in ('path', 'device', 'section'):
            value = entry.get(required)
            if not isinstance(value, str) or not value:
                raise ConfigError(f"{key}[{index}] is missing '{required}': {json.dumps(entry)}")

        path = entry['path'].rstrip('/') or '/'
        if path in seen_paths:
            raise ConfigError(f"{key} lists path {path} more than once")
        seen_paths.add(path)

        sections.append(DiskSection(
            path=path,
            device=entry['device'],
            label=entry['section'],
            role=role,
            dated=bool(entry.get('dated', False)),
        ))
    return tuple(sections)


def _number(data: Dict[str, Any], key: str, default: Any = None, integer: bool = True):
    value = data.get(key, default)
    if value is None:
        raise ConfigError(f"Missing required setting '{key}'")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"Setting '{key}' must be a number, got {value!r}")
    if value < 0:
        raise ConfigError(f"Setting '{key}' must not be negative, got {value}")
    return int(value) if integer else value


def _choice(data: Dict[str, Any], key: str, default: str, choices: Tuple[str, ...]) -> str:
    value = data.get(key, default)
    if value not in choices:
        raise ConfigError(f"Setting '{key}' must be one of {', '.join(choices)}, got {value!r}")
    return value


def parse_space_config(data: Any) -> SpaceConfig:
    """Validate a decoded configuration document."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a JSON object")

    incoming = _parse_sections(data.get('incomingDisksSections'), SectionRole.INCOMING,
                               'incomingDisksSections')
    if not incoming:
        raise ConfigError("'incomingDisksSections' must list at least one section")
    archive = _parse_sections(data.get('archiveDisksSections'), SectionRole.ARCHIVE,
                              'archiveDisksSections')

    metrics_port = data.get('metricsPort')
    if metrics_port is not None:
        metrics_port = _number(data, 'metricsPort')

    return SpaceConfig(
        incoming_sections=incoming,
        archive_sections=archive,
        free_space_limit_gb_race=_number(data, 'freeSpaceLimitGBRace'),
        free_space_limit_gb_archive=_number(data, 'freeSpaceLimitGBArchive'),
        archive_buffer_gb=_number(data, 'archiveBufferGB', 0),
        wait_time_minutes=_number(data, 'waitTimeMinutes', DEFAULT_WAIT_TIME_MINUTES, integer=False),
        error_wait_minutes=_number(data, 'errorWaitMinutes', DEFAULT_ERROR_WAIT_MINUTES, integer=False),
        debug=bool(data.get('debug', False)),
        log_file=data.get('logFile') or None,
        announce_log_file=data.get('GLLogFile') or None,
        copy_options=data.get('copyOptions') or "",
        sync_tool=_choice(data, 'syncTool', 'rclone', SYNC_TOOLS),
        free_space_probe=_choice(data, 'freeSpaceProbe', 'df', FREE_SPACE_PROBES),
        metrics_host=data.get('metricsHost') or "0.0.0.0",
        metrics_port=metrics_port,
        max_scan_depth=_number(data, 'maxScanDepth', DEFAULT_MAX_SCAN_DEPTH),
        archive_targets=build_archive_targets(incoming, archive),
    )


def load_space_config(path: Optional[str] = None) -> SpaceConfig:
    """Load and validate the configuration file.

    Raises:
        ConfigError: if the file cannot be read, parsed or validated
    """
    path = path or CONFIG_PATH
    try:
        with open(path, 'r', encoding='utf-8') as handle:
            data = json.load(handle)
    except OSError as e:
        raise ConfigError(f"Error reading configuration file {path}: {e}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"Error parsing configuration file {path}: {e}")

    config = parse_space_config(data)
    logger.info(
        f"Loaded configuration from {path}: {len(config.incoming_sections)} incoming, "
        f"{len(config.archive_sections)} archive sections"
    )
    return config
