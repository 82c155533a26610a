"""Channel directory — the static set of tracked channels."""

import json
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class ChannelDefinition:
    """A tracked channel.

    key is the stable identifier used in every persisted document;
    channel_id is the upstream identifier (UC...).
    """

    key: str
    channel_id: str
    channel_name: str = ""
    standing_video_id: str | None = None  # always-on schedule placeholder
    excluded_video_ids: frozenset[str] = field(default_factory=frozenset)

    def is_archival_candidate(self, video_id: str) -> bool:
        """False for the standing placeholder and any explicitly excluded video."""
        if video_id == self.standing_video_id:
            return False
        return video_id not in self.excluded_video_ids

    @classmethod
    def from_dict(cls, key: str, data: dict) -> "ChannelDefinition":
        """Build a definition from its JSON form.

        Accepts the legacy ``freechatVideoId`` key for the standing video.
        """
        standing = data.get("standingVideoId") or data.get("freechatVideoId")
        return cls(
            key=key,
            channel_id=data["channelId"],
            channel_name=data.get("channelName", ""),
            standing_video_id=standing,
            excluded_video_ids=frozenset(data.get("excludedVideoIds") or ()),
        )


@dataclass(frozen=True)
class ChannelDirectory:
    """Immutable, ordered collection of channel definitions."""

    channels: tuple[ChannelDefinition, ...] = ()

    def __post_init__(self) -> None:
        keys = [c.key for c in self.channels]
        if len(keys) != len(set(keys)):
            raise ValueError(f"Duplicate channel keys: {keys}")

    def __iter__(self) -> Iterator[ChannelDefinition]:
        return iter(self.channels)

    def __len__(self) -> int:
        return len(self.channels)

    def get(self, key: str) -> ChannelDefinition | None:
        for channel in self.channels:
            if channel.key == key:
                return channel
        return None

    @classmethod
    def from_file(cls, path: Path) -> "ChannelDirectory":
        """Load a directory from a JSON object keyed by channel key.

        Raises:
            ValueError: If the file is not a JSON object of channel entries.
            OSError: If the file cannot be read.
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Channel file must contain a JSON object: {path}")
        try:
            channels = tuple(ChannelDefinition.from_dict(k, v) for k, v in data.items())
        except (KeyError, AttributeError, TypeError) as e:
            raise ValueError(f"Invalid channel definition in {path}: {e}") from e
        return cls(channels)

    @classmethod
    def default(cls) -> "ChannelDirectory":
        """The channels tracked by the published archive."""
        return cls((
            ChannelDefinition(
                key="channelA",
                channel_id="UCrxtv0Zc8uQNfsY0HsAGY8g",
                channel_name="天硝路ろまん",
                standing_video_id="k0g-C_oCYb0",
            ),
            ChannelDefinition(
                key="channelB",
                channel_id="UCFernrRmaCRoOjZ55pwNxpw",
                channel_name="華鉈イオ",
                standing_video_id="foFBBmkRyf0",
            ),
        ))
