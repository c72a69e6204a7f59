"""Seen-item state tracking for RSS Translate Notifier."""

from pathlib import Path

from .logging_config import create_execution_logger

DEFAULT_MAX_ENTRIES = 1000


class SeenItemState:
    """Bounded, insertion-ordered set of processed item identifiers.

    Identifiers are persisted as a newline-separated text file. When the set
    grows past ``max_entries`` the oldest insertions are evicted on save.
    Passing ``state_file=None`` keeps the set in memory only.
    """

    def __init__(
        self,
        state_file: str | Path | None = "last_checked_state.txt",
        max_entries: int = DEFAULT_MAX_ENTRIES,
        execution_id: str | None = None,
    ):
        """Initialize the state tracker.

        Args:
            state_file: Path of the state file, or None for in-memory mode
            max_entries: Maximum number of identifiers retained on save
            execution_id: Execution ID for logging context
        """
        if max_entries <= 0:
            raise ValueError("max_entries must be greater than 0")

        self.state_file = Path(state_file) if state_file else None
        self.max_entries = max_entries
        self.logger = create_execution_logger("state", execution_id)
        # dict keeps insertion order, which doubles as the recency order
        self._seen: dict[str, None] = {}

        self.logger.info(
            "SeenItemState initialized",
            state_file=str(self.state_file) if self.state_file else None,
            max_entries=max_entries,
        )

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._seen

    def ids(self) -> list[str]:
        """Return the identifiers, oldest first."""
        return list(self._seen)

    def is_seen(self, item_id: str) -> bool:
        return item_id in self._seen

    def mark_seen(self, item_id: str) -> None:
        self._seen.setdefault(item_id, None)

    def load(self) -> None:
        """Load persisted identifiers into memory.

        A missing file means first run. Read errors are logged and the
        tracker keeps whatever it already holds.
        """
        if self.state_file is None:
            return

        if not self.state_file.exists():
            self.logger.info(
                "State file not found, starting with empty state",
                state_file=str(self.state_file),
            )
            return

        try:
            content = self.state_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self.logger.warning(
                f"Failed to load state: {e}",
                state_file=str(self.state_file),
                error=str(e),
            )
            return

        for line in content.splitlines():
            line = line.strip()
            if line:
                self.mark_seen(line)

        self.logger.info(
            f"Loaded {len(self._seen)} checked items from state file",
            state_file=str(self.state_file),
            count=len(self._seen),
        )

    def save(self) -> None:
        """Trim to the most recent entries and write them back to disk."""
        self._trim()

        if self.state_file is None:
            return

        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            self.state_file.write_text("\n".join(self._seen), encoding="utf-8")
        except OSError as e:
            self.logger.warning(
                f"Failed to save state: {e}",
                state_file=str(self.state_file),
                error=str(e),
            )
            return

        self.logger.debug(
            "State saved", state_file=str(self.state_file), count=len(self._seen)
        )

    def _trim(self) -> None:
        overflow = len(self._seen) - self.max_entries
        if overflow <= 0:
            return

        ids = list(self._seen)[overflow:]
        self._seen = dict.fromkeys(ids)
        self.logger.info(
            f"Evicted {overflow} oldest identifiers", retained=len(self._seen)
        )
