"""File modification monitoring for the watch command."""

from pathlib import Path
from typing import Dict, Optional, Tuple


class FileMonitor:
    """
    Track file modification state to notice when the draft is saved.

    A file counts as modified when its mtime or size differs from the last
    recorded value (size catches editors that save twice within one mtime tick).

    Example:
        >>> monitor = FileMonitor()
        >>> monitor.record(draft_path)
        >>> # Later, in the polling loop:
        >>> text = monitor.read_if_modified(draft_path)
        >>> if text is not None:
        ...     apply_document(store, split_paragraphs(text))
    """

    def __init__(self) -> None:
        """Initialize empty file tracker."""
        self._state: Dict[Path, Tuple[float, int]] = {}

    @staticmethod
    def _stat(path: Path) -> Tuple[float, int]:
        st = path.stat()
        return st.st_mtime, st.st_size

    def record(self, path: Path) -> None:
        """
        Record the current state of a file.

        Raises:
            FileNotFoundError: If file doesn't exist
        """
        self._state[path] = self._stat(path)

    def is_modified(self, path: Path) -> bool:
        """
        Check if file has changed since last record.

        Returns:
            True if file changed or is not yet tracked, False otherwise

        Raises:
            FileNotFoundError: If file doesn't exist
        """
        current = self._stat(path)
        if path not in self._state:
            return True
        return current != self._state[path]

    def refresh(self, path: Path) -> None:
        """Update recorded state after the file has been re-read."""
        self.record(path)

    def read_if_modified(self, path: Path) -> Optional[str]:
        """
        Re-read a file if it changed, recording its new state.

        Returns:
            The file text, or None if unchanged
        """
        if not self.is_modified(path):
            return None
        text = path.read_text(encoding="utf-8")
        self.refresh(path)
        return text
