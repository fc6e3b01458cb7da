"""Persistent history of executed commands.

Every successful provider round-trip is recorded as a
:class:`~aiq.models.HistoryEntry` in a single JSON array, most recent
first, at ``history.location`` (default ``history.json`` in the data
directory). The array is capped at ``history.maxEntries``; the oldest
entries are dropped on each write.

The log is read-modify-write without locking. Concurrent processes can lose
each other's entries, but a crash never leaves a truncated file because
every write goes through :func:`~aiq.config.atomic_write`.

See Also:
    :meth:`aiq.runner.CommandRunner.replay` -- resend a recorded prompt.
"""

from __future__ import annotations

import json
import secrets
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from aiq.config import atomic_write, expand_env_string, get_data_dir
from aiq.exceptions import HistoryError
from aiq.models import HistoryConfig, HistoryEntry

_HISTORY_FILENAME = "history.json"
_ENTRIES_ADAPTER = TypeAdapter(list[HistoryEntry])


def resolve_history_path(location: Optional[str]) -> Path:
    """Turn ``history.location`` into a path, expanding ``${VAR}`` and ``~``."""
    if not location:
        return get_data_dir() / _HISTORY_FILENAME
    return Path(expand_env_string(location)).expanduser()


def excerpt(text: str, query: str, context: int = 50) -> str:
    """Return the part of *text* around the first match of *query*.

    Up to *context* characters are kept on each side; cut ends are marked
    with ``...`` and newlines are flattened to spaces. Without a match the
    first 100 characters are returned.
    """
    index = text.lower().find(query.lower())
    if index == -1:
        return text[:100] + "..."

    start = max(0, index - context)
    end = min(len(text), index + len(query) + context)
    snippet = text[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet = snippet + "..."
    return snippet.replace("\n", " ")


def preview(text: str, max_length: int = 100) -> str:
    """Single-line preview of *text*, truncated to *max_length* characters."""
    if len(text) > max_length:
        text = text[:max_length] + "..."
    return text.replace("\n", " ")


def format_timestamp(timestamp: int) -> str:
    """Render an epoch-milliseconds timestamp in local time."""
    return datetime.fromtimestamp(timestamp / 1000).strftime("%Y-%m-%d %H:%M:%S")


class HistoryManager:
    """Read and append the history log.

    Args:
        config: The ``history`` section of the configuration.
        path: Explicit log path; overrides ``config.location``.

    Example::

        history = HistoryManager(config.history)
        history.add("summarize", {"maxWords": 30}, prompt, response, 812)
        for entry in history.get_last(5):
            print(history.format_entry(entry))
    """

    def __init__(self, config: HistoryConfig, path: Optional[Path] = None) -> None:
        self._config = config
        self._path = path

    @property
    def path(self) -> Path:
        """The filesystem path of the history log, resolved on first use.

        Raises:
            HistoryError: If the default data directory cannot be created.
        """
        if self._path is None:
            try:
                self._path = resolve_history_path(self._config.location)
            except OSError as exc:
                raise HistoryError(f"Cannot create history directory: {exc}") from exc
        return self._path

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #

    def load(self) -> list[HistoryEntry]:
        """Load every entry, most recent first.

        Returns:
            The recorded entries; an empty list when the log does not exist.

        Raises:
            HistoryError: If the log cannot be read or is not a valid
                history array.
        """
        path = self.path
        if not path.is_file():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return _ENTRIES_ADAPTER.validate_python(data)
        except OSError as exc:
            raise HistoryError(f"Cannot read history file {path}: {exc}") from exc
        except (json.JSONDecodeError, ValidationError) as exc:
            raise HistoryError(
                f"History file {path} is corrupt: {exc}",
                hint='Run "aiq history clear" to start a fresh log',
            ) from exc

    def save(self, entries: list[HistoryEntry]) -> None:
        """Rewrite the log atomically with *entries*.

        Raises:
            HistoryError: If the file cannot be written.
        """
        path = self.path
        try:
            data = _ENTRIES_ADAPTER.dump_python(entries, mode="json")
            atomic_write(path, json.dumps(data, indent=2) + "\n")
        except PydanticSerializationError as exc:
            raise HistoryError(f"Cannot serialize history entry: {exc}") from exc
        except OSError as exc:
            raise HistoryError(f"Cannot write history file {path}: {exc}") from exc

    def add(
        self,
        command: str,
        params: dict[str, Any],
        prompt: str,
        response: str,
        duration: int,
    ) -> Optional[HistoryEntry]:
        """Record one exchange at the head of the log.

        The id and timestamp are generated here. Entries beyond
        ``maxEntries`` are dropped from the tail.

        Returns:
            The new entry, or ``None`` when history is disabled.
        """
        if not self._config.enabled:
            return None

        entry = HistoryEntry(
            id=secrets.token_hex(8),
            timestamp=int(time.time() * 1000),
            command=command,
            params=dict(params),
            prompt=prompt,
            response=response,
            duration=duration,
        )
        entries = self.load()
        entries.insert(0, entry)
        del entries[self._config.max_entries:]
        self.save(entries)
        return entry

    def clear(self) -> None:
        """Remove every entry."""
        self.save([])

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get_last(self, n: int = 10) -> list[HistoryEntry]:
        """Return the *n* most recent entries."""
        return self.load()[:n]

    def get_by_id(self, entry_id: str) -> Optional[HistoryEntry]:
        for entry in self.load():
            if entry.id == entry_id:
                return entry
        return None

    def search(self, query: str) -> list[HistoryEntry]:
        """Entries whose command, prompt or response contains *query*, ignoring case."""
        needle = query.lower()
        return [
            entry
            for entry in self.load()
            if needle in entry.command.lower()
            or needle in entry.prompt.lower()
            or needle in entry.response.lower()
        ]

    def get_last_response(self) -> Optional[HistoryEntry]:
        entries = self.load()
        return entries[0] if entries else None

    @staticmethod
    def format_entry(entry: HistoryEntry) -> str:
        """Two-line summary: ``[date] command{params} (Nms)`` and ``ID: id``."""
        params = f" {json.dumps(entry.params)}" if entry.params else ""
        return (
            f"[{format_timestamp(entry.timestamp)}] {entry.command}{params} "
            f"({entry.duration}ms)\nID: {entry.id}"
        )
