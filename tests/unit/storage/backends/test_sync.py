"""Unit tests for the sync executors."""

import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import make_release
from finspace.config.space_config import parse_space_config
from finspace.storage.backends import (
    LocalSyncExecutor,
    RcloneSyncExecutor,
    get_sync_executor,
)
from finspace.storage.errors import TransferError


def fake_process(returncode=0, stderr=b""):
    process = MagicMock()
    process.returncode = returncode
    process.communicate = AsyncMock(return_value=(b"", stderr))
    return process


class TestRcloneSyncExecutor:
    def test_build_command(self):
        executor = RcloneSyncExecutor("--transfers 4 --checksum")

        command = executor.build_command("/incoming/MOVIES", "Some.Movie", "/archive1/MOVIES")

        assert command == [
            "rclone", "copy",
            "/incoming/MOVIES/Some.Movie/",
            "/archive1/MOVIES/Some.Movie",
            "--transfers", "4", "--checksum",
        ]

    def test_build_command_without_options(self):
        command = RcloneSyncExecutor().build_command("/a", "r", "/b")
        assert command == ["rclone", "copy", "/a/r/", "/b/r"]

    @pytest.mark.asyncio
    async def test_copy_success(self):
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=fake_process())) as exec_mock:
            await RcloneSyncExecutor().copy("/a", "r", "/b")

        assert exec_mock.call_args.args == ("rclone", "copy", "/a/r/", "/b/r")

    @pytest.mark.asyncio
    async def test_copy_failure(self):
        process = fake_process(returncode=3, stderr=b"directory not found")

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            with pytest.raises(TransferError) as exc_info:
                await RcloneSyncExecutor().copy("/a", "r", "/b")

        assert exc_info.value.release_name == "r"
        assert "directory not found" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_missing_binary(self):
        with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError("rclone"))):
            with pytest.raises(TransferError):
                await RcloneSyncExecutor().copy("/a", "r", "/b")


class TestLocalSyncExecutor:
    @pytest.mark.asyncio
    async def test_copy_tree(self, tmp_path):
        make_release(tmp_path / "src", "r", files={"a": 3, "b/c": 5})

        await LocalSyncExecutor().copy(str(tmp_path / "src"), "r", str(tmp_path / "dst"))

        assert (tmp_path / "dst" / "r" / "a").read_bytes() == b"xxx"
        assert (tmp_path / "dst" / "r" / "b" / "c").stat().st_size == 5

    @pytest.mark.asyncio
    async def test_copy_missing_source(self, tmp_path):
        with pytest.raises(TransferError):
            await LocalSyncExecutor().copy(str(tmp_path / "src"), "r", str(tmp_path / "dst"))

    @pytest.mark.asyncio
    async def test_counts_match_is_shallow(self, tmp_path):
        source = make_release(tmp_path / "src", "r", files={"a": 1, "b/c": 1})
        dest = make_release(tmp_path / "dst", "r", files={"a": 1, "b/c": 1, "b/extra": 1})
        executor = LocalSyncExecutor()

        assert await executor.counts_match(str(source), str(dest)) is True

        (dest / "top-level-extra").write_text("x")
        assert await executor.counts_match(str(source), str(dest)) is False

    @pytest.mark.asyncio
    async def test_counts_match_missing_destination(self, tmp_path):
        source = make_release(tmp_path / "src", "r")
        assert await LocalSyncExecutor().counts_match(str(source), str(tmp_path / "nope")) is False

    @pytest.mark.asyncio
    async def test_wipe(self, tmp_path):
        release = make_release(tmp_path, "r", files={"a/b": 1})
        executor = LocalSyncExecutor()

        await executor.wipe(str(tmp_path), "r")
        assert not release.exists()

        # Wiping something that is already gone is fine
        await executor.wipe(str(tmp_path), "r")

    @pytest.mark.asyncio
    async def test_restore_timestamp(self, tmp_path):
        release = make_release(tmp_path, "r")

        await LocalSyncExecutor().restore_timestamp(str(release), 1_500_000_000)

        assert os.stat(release).st_mtime == 1_500_000_000
        assert os.stat(release).st_atime == 1_500_000_000


class TestGetSyncExecutor:
    def test_local(self, config):
        assert type(get_sync_executor(config)) is LocalSyncExecutor

    def test_rclone_with_copy_options(self, config_data):
        config_data["syncTool"] = "rclone"
        config_data["copyOptions"] = "--checksum"

        executor = get_sync_executor(parse_space_config(config_data))

        assert isinstance(executor, RcloneSyncExecutor)
        assert executor.copy_options == "--checksum"
