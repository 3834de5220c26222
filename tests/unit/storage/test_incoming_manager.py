"""Unit tests for incoming section management."""

import os

import pytest

from conftest import DAY, announce_lines, make_release
from finspace.config.space_config import parse_space_config
from finspace.storage.announce import AnnounceLog
from finspace.storage.archive_manager import ArchiveSectionManager
from finspace.storage.backends import RecordingSyncExecutor
from finspace.storage.errors import ProbeError
from finspace.storage.incoming_manager import IncomingSectionManager
from finspace.storage.reclaimer import ArchiveCapacityReclaimer


def build_manager(config, probe, scanner, sync):
    announcer = AnnounceLog(config.announce_log_file, debug=config.debug)
    reclaimer = ArchiveCapacityReclaimer(config, probe, scanner, announcer)
    archive_manager = ArchiveSectionManager(config, probe, sync, reclaimer)
    return IncomingSectionManager(config, probe, scanner, archive_manager, announcer)


class TestIncomingSectionManager:
    @pytest.mark.asyncio
    async def test_enough_free_space(self, incoming_manager, probe, config, layout, now):
        source = make_release(layout["movies_in"], "Some.Movie", mtime=now - DAY)
        probe.set_free_space("incoming-dev", 100)

        assert await incoming_manager.manage(config.incoming_sections[0]) is False
        assert source.exists()
        assert announce_lines(config) == []

    @pytest.mark.asyncio
    async def test_no_releases(self, incoming_manager, config):
        assert await incoming_manager.manage(config.incoming_sections[0]) is False

    @pytest.mark.asyncio
    async def test_migrates_oldest_release(self, incoming_manager, sync, config, layout, now):
        oldest = make_release(layout["movies_in"], "Old.Movie", mtime=1_600_000_000.5)
        newer = make_release(layout["movies_in"], "New.Movie", mtime=now - DAY)

        assert await incoming_manager.manage(config.incoming_sections[0]) is True

        dest = layout["movies_arc2"] / "Old.Movie"
        assert not oldest.exists()
        assert newer.exists()
        assert dest.exists()
        assert os.stat(dest).st_mtime == 1_600_000_000
        assert len(sync.copies) == 1

        lines = announce_lines(config)
        assert len(lines) == 1
        assert lines[0].endswith(
            f'TSM: "Old.Movie" "0" "20" "{layout["movies_arc2"]}" "800" "MOVIES"'
        )

    @pytest.mark.asyncio
    async def test_oldest_is_global_across_incoming_sections(self, incoming_manager, config, layout, now):
        movie = make_release(layout["movies_in"], "Some.Movie", mtime=now - 2 * DAY)
        show = make_release(layout["tv_in"], "Some.Show", mtime=now - 5 * DAY)

        # The MOVIES section is low, but the oldest release overall is in TV
        assert await incoming_manager.manage(config.incoming_sections[0]) is True

        assert movie.exists()
        assert not show.exists()
        assert (layout["tv_arc2"] / "Some.Show").exists()

    @pytest.mark.asyncio
    async def test_deletes_when_no_archive_tier(self, config_data, probe, scanner, sync, layout, now):
        config_data["archiveDisksSections"] = config_data["archiveDisksSections"][:2]
        config = parse_space_config(config_data)
        manager = build_manager(config, probe, scanner, sync)
        show = make_release(layout["tv_in"], "Some.Show", mtime=now - 5 * DAY)

        assert await manager.manage(config.incoming_sections[1]) is True

        assert not show.exists()
        assert sync.copies == []
        lines = announce_lines(config)
        assert len(lines) == 1
        assert lines[0].endswith('TSD: "Some.Show" "0" "20" "TV" "20" "TV"')

    @pytest.mark.asyncio
    async def test_empty_release_is_deleted(self, incoming_manager, sync, config, layout, now):
        empty = layout["movies_in"] / "Empty.Release"
        empty.mkdir()
        os.utime(empty, (now - 9 * DAY, now - 9 * DAY))
        other = make_release(layout["movies_in"], "Some.Movie", mtime=now - DAY)

        assert await incoming_manager.manage(config.incoming_sections[0]) is True

        assert not empty.exists()
        assert other.exists()
        assert sync.copies == []
        assert announce_lines(config) == []

    @pytest.mark.asyncio
    async def test_insufficient_archive_capacity(self, incoming_manager, probe, sync, config, layout, now):
        source = make_release(layout["movies_in"], "Some.Movie", mtime=now - DAY)
        probe.set_free_space("archive-dev1", 5)
        probe.set_free_space("archive-dev2", 9)

        assert await incoming_manager.manage(config.incoming_sections[0]) is False

        assert source.exists()
        assert sync.copies == []
        assert announce_lines(config) == []

    @pytest.mark.asyncio
    async def test_failed_migration_returns_false(self, config, probe, scanner, layout, now):
        sync = RecordingSyncExecutor(mismatch=True)
        manager = build_manager(config, probe, scanner, sync)
        source = make_release(layout["movies_in"], "Some.Movie", mtime=now - DAY)

        assert await manager.manage(config.incoming_sections[0]) is False
        assert source.exists()

    @pytest.mark.asyncio
    async def test_debug_mode_changes_nothing(self, config_data, probe, scanner, sync, layout, now):
        config_data["debug"] = True
        config = parse_space_config(config_data)
        manager = build_manager(config, probe, scanner, sync)
        movie = make_release(layout["movies_in"], "Some.Movie", mtime=now - 3 * DAY)
        empty = layout["tv_in"] / "Empty"
        empty.mkdir()

        assert await manager.manage(config.incoming_sections[0]) is True
        os.utime(empty, (now - 9 * DAY, now - 9 * DAY))
        assert await manager.manage(config.incoming_sections[0]) is True

        assert movie.exists()
        assert empty.exists()
        assert sync.copies == []
        assert announce_lines(config) == []

    @pytest.mark.asyncio
    async def test_probe_failure_propagates(self, incoming_manager, probe, config):
        probe.fail("incoming-dev")

        with pytest.raises(ProbeError):
            await incoming_manager.manage(config.incoming_sections[0])

    @pytest.mark.asyncio
    async def test_failed_recheck_keeps_result(self, incoming_manager, probe, config, layout, now):
        source = make_release(layout["movies_in"], "Some.Movie", mtime=now - DAY)
        readings = iter([20])

        def incoming_free():
            try:
                return next(readings)
            except StopIteration:
                raise ProbeError("incoming-dev", "device went away")

        probe.set_free_space("incoming-dev", incoming_free)

        assert await incoming_manager.manage(config.incoming_sections[0]) is True
        assert not source.exists()
