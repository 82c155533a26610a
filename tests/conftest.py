"""Shared fixtures for streamarchive tests."""

from unittest.mock import MagicMock

import pytest

from streamarchive.channels import ChannelDefinition, ChannelDirectory
from streamarchive.ingestion.youtube_api import ChatPage, YouTubeDataClient
from streamarchive.models import VideoEntry, VideoStatus
from streamarchive.registry import VideoRegistry
from streamarchive.storage.cursors import JsonCursorRepository
from streamarchive.storage.transcripts import JsonTranscriptRepository


@pytest.fixture
def chat_item():
    """Factory for liveChatMessages resources."""

    def _make(published_at: str, text: str, offset_ms: int = 0, kind: str = "textMessageEvent") -> dict:
        return {
            "snippet": {
                "publishedAt": published_at,
                "videoOffsetTimeMillis": str(offset_ms),
                "displayMessage": text,
                "type": kind,
            }
        }

    return _make


@pytest.fixture
def video_resource():
    """Factory for videos.list resources; live=None means an ordinary upload."""

    def _make(video_id: str, published_at: str, *, title: str = "Stream", live: dict | None = None) -> dict:
        resource = {
            "id": video_id,
            "snippet": {"publishedAt": published_at, "title": title, "channelTitle": "Test Channel"},
        }
        if live is not None:
            resource["liveStreamingDetails"] = live
        return resource

    return _make


@pytest.fixture
def channel():
    """A tracked channel with a standing video and one exclusion."""
    return ChannelDefinition(
        key="chanA",
        channel_id="UCaaaaaaaaaaaaaaaaaaaaaa",
        channel_name="Channel A",
        standing_video_id="standing01",
        excluded_video_ids=frozenset({"excluded01"}),
    )


@pytest.fixture
def channels(channel):
    return ChannelDirectory((
        channel,
        ChannelDefinition(key="chanB", channel_id="UCbbbbbbbbbbbbbbbbbbbbbb", channel_name="Channel B"),
    ))


@pytest.fixture
def make_entry():
    """Factory for VideoEntry objects."""

    def _make(video_id: str, status: VideoStatus = VideoStatus.ENDED, *, chat_fetched: bool = False,
              published_at: str = "2025-01-01T00:00:00Z", channel_key: str = "chanA") -> VideoEntry:
        return VideoEntry(
            video_id=video_id,
            channel_key=channel_key,
            channel_name="Channel A",
            published_at=published_at,
            title=f"Stream {video_id}",
            status=status,
            chat_fetched=chat_fetched,
        )

    return _make


@pytest.fixture
def mock_client():
    """YouTubeDataClient double with no upstream behaviour configured."""
    client = MagicMock(spec=YouTubeDataClient)
    client.chat_page.return_value = ChatPage()
    return client


@pytest.fixture
def registry_path(tmp_path):
    return tmp_path / "data" / "videos.json"


@pytest.fixture
def cursor_repo(tmp_path):
    return JsonCursorRepository(tmp_path / "data" / "comments_state.json")


@pytest.fixture
def transcript_repo(tmp_path):
    return JsonTranscriptRepository(tmp_path / "data" / "comments")


@pytest.fixture
def empty_registry():
    return VideoRegistry()
