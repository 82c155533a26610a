"""Domain models for streamarchive.

Every record serializes with the keys of the published JSON documents
(camelCase for registry/transcript metadata, single letters for chat
messages) so existing archives keep loading. Unknown keys are ignored
and missing ones fall back to defaults.
"""

import re
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


_FRACTION = re.compile(r"(T\d{2}:\d{2}:\d{2})\.(\d+)")


def parse_timestamp(value: str) -> datetime | None:
    """Parse an upstream ISO-8601 timestamp. Returns None if unparseable.

    Fractional seconds of any length are accepted; they are normalized to
    microseconds first because older fromisoformat only takes 3 or 6 digits.
    """
    if not value:
        return None
    normalized = _FRACTION.sub(
        lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}",
        value.replace("Z", "+00:00"),
        count=1,
    )
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class VideoStatus(str, Enum):
    """Broadcast lifecycle state. Transitions only move forward."""

    UPCOMING = "upcoming"
    LIVE = "live"
    ENDED = "ended"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]

    def advance(self, other: "VideoStatus") -> "VideoStatus":
        """Return whichever of self/other is further along the lifecycle."""
        return other if other.rank > self.rank else self

    @classmethod
    def derive(cls, live_details: dict) -> "VideoStatus":
        """Derive status from a liveStreamingDetails block."""
        if live_details.get("actualEndTime"):
            return cls.ENDED
        if live_details.get("actualStartTime"):
            return cls.LIVE
        return cls.UPCOMING


_STATUS_RANK = {VideoStatus.UPCOMING: 0, VideoStatus.LIVE: 1, VideoStatus.ENDED: 2}


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_json(self) -> dict:
        """Serialize with the on-disk key names."""
        return self.model_dump(by_alias=True, mode="json")


class VideoEntry(_Record):
    """One archival-eligible broadcast in the video registry."""

    video_id: str = Field(alias="videoId")
    channel_key: str = Field(default="", alias="channelKey")
    channel_name: str = Field(default="", alias="channelName")
    published_at: str = Field(default="", alias="publishedAt")
    title: str = ""
    status: VideoStatus = VideoStatus.UPCOMING
    chat_fetched: bool = Field(default=False, alias="chatFetched")

    @field_validator("status", mode="before")
    @classmethod
    def _tolerate_unknown_status(cls, value):
        try:
            return VideoStatus(value)
        except ValueError:
            return VideoStatus.UPCOMING

    @property
    def published_sort_key(self) -> datetime:
        """Publication time for ordering; unparseable values sort first."""
        return parse_timestamp(self.published_at) or datetime.min.replace(tzinfo=timezone.utc)


class CursorState(_Record):
    """Resumable chat pagination state for one video.

    The distinction between an absent ``liveChatId`` key (session not yet
    looked up) and an explicit null (session permanently unavailable) is
    carried through pydantic's fields-set tracking, so build instances by
    passing fields to the constructor rather than mutating them.
    """

    session_id: str | None = Field(default=None, alias="liveChatId")
    continuation_token: str | None = Field(default=None, alias="nextPageToken")

    @property
    def session_resolved(self) -> bool:
        """True once the session handle has been looked up, even if it was absent."""
        return "session_id" in self.model_fields_set

    @property
    def is_terminal(self) -> bool:
        """True when the session is known to be permanently unavailable."""
        return self.session_resolved and self.session_id is None

    @property
    def resume_token(self) -> str:
        """Token to start the next page request from ("" = from the beginning)."""
        return self.continuation_token or ""

    @classmethod
    def unavailable(cls) -> "CursorState":
        return cls(session_id=None, continuation_token=None)

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json", exclude_unset=True)


class TranscriptMessage(_Record):
    """A single chat message."""

    timestamp: str = Field(alias="t")
    offset_seconds: int = Field(default=0, alias="o")
    text: str = Field(default="", alias="m")
    kind: str = Field(default="", alias="type")

    @property
    def identity_key(self) -> tuple[str, str]:
        """Dedup key: two messages with the same timestamp and text are one message."""
        return (self.timestamp, self.text)

    @classmethod
    def from_api_item(cls, item: dict) -> "TranscriptMessage":
        """Build a message from a liveChatMessages resource.

        Raises:
            ValueError: If the resource is not an object or its snippet
                        does not decode (pydantic ValidationError included).
        """
        if not isinstance(item, dict):
            raise ValueError(f"chat item is not an object: {item!r}")
        snippet = item.get("snippet") or {}
        if not isinstance(snippet, dict):
            raise ValueError(f"chat item snippet is not an object: {snippet!r}")
        millis = snippet.get("videoOffsetTimeMillis")
        try:
            offset = int(millis) // 1000 if millis is not None else 0
        except (TypeError, ValueError):
            offset = 0
        return cls(
            timestamp=snippet.get("publishedAt") or "",
            offset_seconds=offset,
            text=snippet.get("displayMessage") or "",
            kind=snippet.get("type") or "",
        )


class TranscriptDocument(_Record):
    """The archived chat transcript of one video."""

    video_id: str = Field(alias="videoId")
    channel_key: str = Field(default="", alias="channelKey")
    channel_name: str = Field(default="", alias="channelName")
    fetched_at: str = Field(default_factory=utc_now_iso, alias="fetchedAt")
    messages: list[TranscriptMessage] = Field(default_factory=list)

    @classmethod
    def empty_for(cls, entry: VideoEntry) -> "TranscriptDocument":
        return cls(
            video_id=entry.video_id,
            channel_key=entry.channel_key,
            channel_name=entry.channel_name,
        )
