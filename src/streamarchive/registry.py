"""Video registry — the durable list of known broadcasts and their lifecycle."""

import logging
from collections.abc import Iterator
from pathlib import Path

from pydantic import ValidationError

from streamarchive.models import VideoEntry, VideoStatus
from streamarchive.storage.jsonfile import read_json, write_json

logger = logging.getLogger(__name__)


class RegistryNotFoundError(Exception):
    """Raised when the registry document is required but does not exist."""


class VideoRegistry:
    """Ordered collection of VideoEntry, unique by video_id.

    Entries are never removed. The list is kept sorted ascending by
    publication time; ties keep their insertion order. chat_fetched is
    owned by the chat archiver and is never reset by an upsert.
    """

    def __init__(self, entries: list[VideoEntry] | None = None) -> None:
        self._entries: list[VideoEntry] = []
        self._index: dict[str, VideoEntry] = {}
        for entry in entries or []:
            if entry.video_id in self._index:
                logger.warning("Duplicate registry entry ignored: %s", entry.video_id)
                continue
            self._entries.append(entry)
            self._index[entry.video_id] = entry
        self._sort()

    @classmethod
    def load(cls, path: Path, *, required: bool = False) -> "VideoRegistry":
        """Load the registry document.

        A corrupt document, or individual entries that do not decode,
        are skipped with a warning rather than failing the run.

        Raises:
            RegistryNotFoundError: If required and the document is absent.
        """
        path = Path(path)
        if required and not path.exists():
            raise RegistryNotFoundError(f"Video registry not found: {path}")

        raw = read_json(path)
        if raw is None:
            return cls()
        if not isinstance(raw, list):
            logger.warning("Registry %s is not a JSON array; starting empty", path)
            return cls()

        entries = []
        for item in raw:
            try:
                entries.append(VideoEntry.model_validate(item))
            except ValidationError as e:
                logger.warning("Skipping unreadable registry entry: %s", e)
        return cls(entries)

    def save(self, path: Path) -> None:
        """Atomically rewrite the registry document."""
        write_json(path, [entry.to_json() for entry in self._entries])

    def __iter__(self) -> Iterator[VideoEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, video_id: object) -> bool:
        return video_id in self._index

    def get(self, video_id: str) -> VideoEntry | None:
        return self._index.get(video_id)

    def upsert(self, entry: VideoEntry) -> bool:
        """Insert a new entry or refresh an existing one.

        New entries always start with chat_fetched=False. For an existing
        entry the descriptive fields are replaced and status advances but
        never regresses; chat_fetched is preserved.

        Returns:
            True if the entry was inserted, False if it updated an existing one.
        """
        current = self._index.get(entry.video_id)
        if current is None:
            fresh = entry.model_copy(update={"chat_fetched": False})
            self._entries.append(fresh)
            self._index[fresh.video_id] = fresh
            self._sort()
            return True

        updated = current.model_copy(update={
            "channel_name": entry.channel_name or current.channel_name,
            "title": entry.title or current.title,
            "published_at": entry.published_at or current.published_at,
            "status": current.status.advance(entry.status),
        })
        self._replace(updated)
        self._sort()
        return False

    def mark_chat_fetched(self, video_id: str) -> None:
        """Record that the transcript is complete. Terminal for the video."""
        current = self._index.get(video_id)
        if current is None or current.chat_fetched:
            return
        self._replace(current.model_copy(update={"chat_fetched": True}))

    def candidates(self, status: VideoStatus) -> list[VideoEntry]:
        """Entries with the given status whose chat is not yet complete, in registry order."""
        return [e for e in self._entries if e.status == status and not e.chat_fetched]

    def by_channel(self, channel_key: str) -> list[VideoEntry]:
        return [e for e in self._entries if e.channel_key == channel_key]

    def _replace(self, entry: VideoEntry) -> None:
        for position, existing in enumerate(self._entries):
            if existing.video_id == entry.video_id:
                self._entries[position] = entry
                break
        self._index[entry.video_id] = entry

    def _sort(self) -> None:
        self._entries.sort(key=lambda e: e.published_sort_key)
