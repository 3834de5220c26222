"""Unit tests for release values."""

from finspace.storage.models import BYTES_PER_GB, BYTES_PER_MB, Release


def make(size_bytes, modified_at=1_700_000_000.0):
    return Release(
        path="/incoming/MOVIES/Some.Release",
        name="Some.Release",
        size_bytes=size_bytes,
        modified_at=modified_at,
        owner_label="MOVIES",
        section_path="/incoming/MOVIES",
    )


class TestRelease:
    def test_size_mb_rounds_half_up(self):
        assert make(BYTES_PER_MB + BYTES_PER_MB // 2).size_mb == 2
        assert make(BYTES_PER_MB + BYTES_PER_MB // 2 - 1).size_mb == 1
        assert make(0).size_mb == 0

    def test_size_gb(self):
        assert make(3 * BYTES_PER_GB).size_gb == 3.0

    def test_describe(self):
        text = make(2 * BYTES_PER_GB).describe()
        assert "Some.Release" in text
        assert "Section: MOVIES" in text
        assert "Size: 2.00 GB" in text
