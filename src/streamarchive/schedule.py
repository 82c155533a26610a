"""Schedule cache — upcoming broadcasts and standing videos for the front end."""

import logging
from pathlib import Path

from streamarchive.channels import ChannelDirectory
from streamarchive.ingestion.youtube_api import YouTubeAPIError, YouTubeDataClient
from streamarchive.models import utc_now_iso
from streamarchive.storage.jsonfile import write_json

logger = logging.getLogger(__name__)

_THUMBNAIL_FILES = {
    "max": "maxresdefault.jpg",
    "hq": "hqdefault.jpg",
    "mq": "mqdefault.jpg",
}


def thumbnail_url(video_id: str, size: str = "max") -> str:
    """Static thumbnail URL for a video. Unknown sizes fall back to mq."""
    filename = _THUMBNAIL_FILES.get(size, _THUMBNAIL_FILES["mq"])
    return f"https://i.ytimg.com/vi/{video_id}/{filename}"


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


class ScheduleCache:
    """Builds live_cache.json (upcoming streams) and freechat.json (standing videos)."""

    def __init__(
        self,
        client: YouTubeDataClient,
        channels: ChannelDirectory,
        per_channel: int = 7,
    ) -> None:
        self._client = client
        self._channels = channels
        self._per_channel = per_channel

    def build_upcoming(self) -> dict:
        """Upcoming broadcasts per channel; a failing channel gets an empty list."""
        result: dict = {"updatedAt": utc_now_iso(), "channels": {}}
        for channel in self._channels:
            try:
                items = self._client.search_upcoming(channel.channel_id, self._per_channel)
            except YouTubeAPIError as e:
                logger.warning("Upcoming search failed for %s: %s", channel.key, e)
                items = []

            cards = []
            for item in items:
                video_id = (item.get("id") or {}).get("videoId")
                if not video_id or not channel.is_archival_candidate(video_id):
                    continue
                cards.append({
                    "videoId": video_id,
                    "title": (item.get("snippet") or {}).get("title", ""),
                    "thumbnail": thumbnail_url(video_id, "hq"),
                    "url": watch_url(video_id),
                })
            result["channels"][channel.key] = cards
        return result

    def build_standing(self) -> dict:
        """Standing placeholder video per channel, for channels that have one."""
        return {
            channel.key: {
                "videoId": channel.standing_video_id,
                "thumbnail": thumbnail_url(channel.standing_video_id, "max"),
            }
            for channel in self._channels
            if channel.standing_video_id
        }

    def write(self, schedule_path: Path, standing_path: Path) -> dict:
        """Build and write both cache documents. Returns the upcoming document."""
        upcoming = self.build_upcoming()
        write_json(schedule_path, upcoming)
        write_json(standing_path, self.build_standing())
        logger.info(
            "Schedule cache updated: %d upcoming broadcasts",
            sum(len(cards) for cards in upcoming["channels"].values()),
        )
        return upcoming
