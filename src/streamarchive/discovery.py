"""Video discovery — find archival-eligible broadcasts and upsert them into the registry."""

import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from streamarchive.channels import ChannelDefinition, ChannelDirectory
from streamarchive.ingestion.youtube_api import YouTubeAPIError, YouTubeDataClient
from streamarchive.models import VideoEntry, VideoStatus
from streamarchive.registry import VideoRegistry

logger = logging.getLogger(__name__)


@dataclass
class ChannelReport:
    """Discovery outcome for one channel."""

    channel_key: str
    found: int = 0
    inserted: int = 0
    updated: int = 0
    error: str | None = None


@dataclass
class DiscoveryResult:
    """Outcome of one discovery run across every channel."""

    channels: list[ChannelReport] = field(default_factory=list)

    @property
    def inserted(self) -> int:
        return sum(c.inserted for c in self.channels)

    @property
    def updated(self) -> int:
        return sum(c.updated for c in self.channels)

    @property
    def failed_channels(self) -> list[str]:
        return [c.channel_key for c in self.channels if c.error]


class ChannelDiscovery:
    """Lists each channel's uploads and keeps the broadcasts worth archiving.

    A video qualifies when upstream reports live-streaming details for it
    and the channel does not exclude it. Channels are processed one at a
    time and a failing channel contributes nothing to the run.
    """

    def __init__(
        self,
        client: YouTubeDataClient,
        channels: ChannelDirectory,
        incremental: bool = False,
    ) -> None:
        self._client = client
        self._channels = channels
        self._incremental = incremental

    def run(self, registry: VideoRegistry) -> DiscoveryResult:
        """Discover every channel and upsert the results into the registry.

        The registry is modified in place; saving it is the caller's job.
        """
        result = DiscoveryResult()
        for channel in self._channels:
            report = ChannelReport(channel_key=channel.key)
            try:
                entries = self._discover(channel, registry)
            except YouTubeAPIError as e:
                logger.warning("Discovery failed for %s: %s", channel.key, e)
                report.error = str(e)
                result.channels.append(report)
                continue

            report.found = len(entries)
            for entry in entries:
                if registry.upsert(entry):
                    report.inserted += 1
                else:
                    report.updated += 1
            logger.info(
                "Discovered %d broadcasts for %s (%d new)",
                report.found, channel.key, report.inserted,
            )
            result.channels.append(report)
        return result

    def discover_channel(
        self,
        channel: ChannelDefinition,
        registry: VideoRegistry | None = None,
    ) -> list[VideoEntry]:
        """Return the channel's eligible broadcasts, oldest first.

        Upstream failures yield an empty list.
        """
        try:
            return self._discover(channel, registry)
        except YouTubeAPIError as e:
            logger.warning("Discovery failed for %s: %s", channel.key, e)
            return []

    def _discover(
        self,
        channel: ChannelDefinition,
        registry: VideoRegistry | None,
    ) -> list[VideoEntry]:
        playlist_id = self._client.uploads_playlist_id(channel.channel_id)
        video_ids = self._collect_ids(channel, playlist_id, registry)
        candidates = [vid for vid in video_ids if channel.is_archival_candidate(vid)]
        if not candidates:
            return []

        entries = [
            entry
            for resource in self._client.list_videos(candidates)
            if (entry := self._to_entry(resource, channel)) is not None
        ]
        entries.sort(key=lambda e: e.published_sort_key)
        return entries

    def _collect_ids(
        self,
        channel: ChannelDefinition,
        playlist_id: str,
        registry: VideoRegistry | None,
    ) -> list[str]:
        """Collect upload IDs, deduplicated, in upstream order.

        In incremental mode paging stops at the first upload already
        recorded as ended; the channel's known non-ended broadcasts are
        appended so their status can still advance.
        """
        known = registry.by_channel(channel.key) if registry is not None else []
        settled = {e.video_id for e in known if e.status == VideoStatus.ENDED}

        ids: list[str] = []
        seen: set[str] = set()
        for video_id in self._client.iter_playlist_video_ids(playlist_id):
            if self._incremental and video_id in settled:
                break
            if video_id not in seen:
                seen.add(video_id)
                ids.append(video_id)

        if self._incremental:
            for entry in known:
                if entry.video_id not in seen and entry.status != VideoStatus.ENDED:
                    seen.add(entry.video_id)
                    ids.append(entry.video_id)
        return ids

    @staticmethod
    def _to_entry(resource: dict, channel: ChannelDefinition) -> VideoEntry | None:
        """Classify one videos.list resource; None for non-broadcast uploads
        and for resources that do not decode.
        """
        if not isinstance(resource, dict):
            logger.warning("Skipping non-object video resource for %s", channel.key)
            return None
        video_id = resource.get("id")
        if not video_id or not channel.is_archival_candidate(video_id):
            return None

        live = resource.get("liveStreamingDetails")
        if not live:
            return None  # regular upload or short
        if not isinstance(live, dict):
            logger.warning("Skipping %s: malformed liveStreamingDetails", video_id)
            return None

        snippet = resource.get("snippet")
        if not isinstance(snippet, dict):
            snippet = {}
        try:
            return VideoEntry(
                video_id=video_id,
                channel_key=channel.key,
                channel_name=channel.channel_name or snippet.get("channelTitle") or "",
                published_at=snippet.get("publishedAt") or "",
                title=snippet.get("title") or "",
                status=VideoStatus.derive(live),
                chat_fetched=False,
            )
        except ValidationError as e:
            logger.warning("Skipping undecodable video resource %s: %s", video_id, e)
            return None
