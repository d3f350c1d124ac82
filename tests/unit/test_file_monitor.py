"""Unit tests for FileMonitor."""

import os

import pytest

from hyperdrafter.services.file_monitor import FileMonitor


def bump_mtime(path, seconds=5):
    """Move the file's mtime forward so the change is visible on coarse clocks."""
    st = path.stat()
    os.utime(path, (st.st_atime, st.st_mtime + seconds))


class TestFileMonitor:
    """Test FileMonitor class."""

    def test_record_and_check_unmodified(self, tmp_path):
        """Test recording file and checking it hasn't been modified."""
        monitor = FileMonitor()
        draft = tmp_path / "draft.md"
        draft.write_text("Initial content")

        monitor.record(draft)

        assert not monitor.is_modified(draft)

    def test_detect_modification(self, tmp_path):
        monitor = FileMonitor()
        draft = tmp_path / "draft.md"
        draft.write_text("Initial content")
        monitor.record(draft)

        draft.write_text("Modified content")
        bump_mtime(draft)

        assert monitor.is_modified(draft)

    def test_size_change_detected_without_mtime_change(self, tmp_path):
        monitor = FileMonitor()
        draft = tmp_path / "draft.md"
        draft.write_text("Short")
        monitor.record(draft)
        mtime = draft.stat().st_mtime

        draft.write_text("Much longer content")
        os.utime(draft, (mtime, mtime))

        assert monitor.is_modified(draft)

    def test_untracked_file_is_modified(self, tmp_path):
        draft = tmp_path / "draft.md"
        draft.write_text("content")

        assert FileMonitor().is_modified(draft)

    def test_refresh_after_reload(self, tmp_path):
        monitor = FileMonitor()
        draft = tmp_path / "draft.md"
        draft.write_text("Initial content")
        monitor.record(draft)
        draft.write_text("Modified content")
        bump_mtime(draft)

        monitor.refresh(draft)

        assert not monitor.is_modified(draft)

    def test_read_if_modified(self, tmp_path):
        monitor = FileMonitor()
        draft = tmp_path / "draft.md"
        draft.write_text("First")
        monitor.record(draft)

        assert monitor.read_if_modified(draft) is None

        draft.write_text("Second version")
        bump_mtime(draft)

        assert monitor.read_if_modified(draft) == "Second version"
        assert monitor.read_if_modified(draft) is None

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            FileMonitor().record(tmp_path / "missing.md")
