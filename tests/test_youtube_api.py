"""Tests for the YouTube Data API client."""

import httpx
import pytest

from streamarchive.ingestion.youtube_api import API_BASE_URL, YouTubeAPIError, YouTubeDataClient


def _client(handler) -> YouTubeDataClient:
    http = httpx.Client(base_url=API_BASE_URL, transport=httpx.MockTransport(handler))
    return YouTubeDataClient(api_key="test-key", http_client=http)


class TestRequests:
    def test_key_and_path(self):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json={"items": [
                {"contentDetails": {"relatedPlaylists": {"uploads": "UUabc"}}}
            ]})

        assert _client(handler).uploads_playlist_id("UCabc") == "UUabc"
        assert seen[0].path == "/youtube/v3/channels"
        assert seen[0].params["key"] == "test-key"
        assert seen[0].params["id"] == "UCabc"

    def test_uploads_playlist_missing(self):
        client = _client(lambda r: httpx.Response(200, json={"items": []}))
        with pytest.raises(YouTubeAPIError):
            client.uploads_playlist_id("UCabc")

    def test_http_error(self):
        client = _client(lambda r: httpx.Response(403, json={"error": {"message": "quota"}}))
        with pytest.raises(YouTubeAPIError, match="403"):
            client.live_chat_id("v1")

    def test_invalid_json(self):
        client = _client(lambda r: httpx.Response(200, content=b"<html>"))
        with pytest.raises(YouTubeAPIError):
            client.live_chat_id("v1")

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("boom", request=request)

        with pytest.raises(YouTubeAPIError):
            _client(handler).live_chat_id("v1")


class TestPlaylist:
    def test_follows_page_tokens(self):
        pages = {
            None: {"items": [{"contentDetails": {"videoId": "a"}}], "nextPageToken": "p2"},
            "p2": {"items": [{"contentDetails": {"videoId": "b"}}]},
        }

        def handler(request):
            return httpx.Response(200, json=pages[request.url.params.get("pageToken")])

        assert list(_client(handler).iter_playlist_video_ids("UUabc")) == ["a", "b"]

    def test_stops_on_empty_items(self):
        client = _client(lambda r: httpx.Response(200, json={"nextPageToken": "again"}))
        assert list(client.iter_playlist_video_ids("UUabc")) == []


class TestVideos:
    def test_list_videos_batches_of_50(self):
        calls = []

        def handler(request):
            ids = request.url.params["id"].split(",")
            calls.append(len(ids))
            return httpx.Response(200, json={"items": [{"id": i} for i in ids]})

        ids = [f"v{i}" for i in range(120)]
        resources = _client(handler).list_videos(ids)
        assert calls == [50, 50, 20]
        assert [r["id"] for r in resources] == ids

    def test_live_chat_id_present(self):
        body = {"items": [{"liveStreamingDetails": {"activeLiveChatId": "S1"}}]}
        assert _client(lambda r: httpx.Response(200, json=body)).live_chat_id("v1") == "S1"

    def test_live_chat_id_absent(self):
        body = {"items": [{"liveStreamingDetails": {"actualEndTime": "x"}}]}
        assert _client(lambda r: httpx.Response(200, json=body)).live_chat_id("v1") is None

    def test_live_chat_id_unknown_video(self):
        assert _client(lambda r: httpx.Response(200, json={"items": []})).live_chat_id("v1") is None


class TestChat:
    def test_chat_page(self):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json={"items": [{"snippet": {}}], "nextPageToken": "tok2"})

        page = _client(handler).chat_page("S1", "tok1", max_results=200)
        assert page.next_page_token == "tok2"
        assert len(page.items) == 1
        assert seen[0].path == "/youtube/v3/liveChat/messages"
        assert seen[0].params["pageToken"] == "tok1"
        assert seen[0].params["maxResults"] == "200"

    def test_first_page_sends_no_token(self):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json={})

        page = _client(handler).chat_page("S1", "")
        assert "pageToken" not in seen[0].params
        assert page.items == []
        assert page.next_page_token is None

    def test_search_upcoming(self):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json={"items": [{"id": {"videoId": "u1"}}]})

        items = _client(handler).search_upcoming("UCabc", max_results=7)
        assert items == [{"id": {"videoId": "u1"}}]
        assert seen[0].params["eventType"] == "upcoming"


def _google_error(status: int, reason: str) -> httpx.Response:
    return httpx.Response(status, json={"error": {
        "code": status,
        "message": reason,
        "errors": [{"reason": reason, "domain": "youtube.liveChat"}],
    }})


class TestClosedChat:
    def test_chat_ended_reads_as_empty_page(self):
        client = _client(lambda r: _google_error(403, "liveChatEnded"))
        page = client.chat_page("S1", "tokX")
        assert page.items == []
        assert page.next_page_token is None

    def test_chat_not_found_reads_as_empty_page(self):
        client = _client(lambda r: httpx.Response(404, json={}))
        assert client.chat_page("S1", "tokX").items == []

    def test_quota_error_still_raises(self):
        client = _client(lambda r: _google_error(403, "quotaExceeded"))
        with pytest.raises(YouTubeAPIError) as exc_info:
            client.chat_page("S1", "tokX")
        assert exc_info.value.status_code == 403
        assert exc_info.value.reason == "quotaExceeded"

    def test_closed_reason_only_applies_to_chat(self):
        client = _client(lambda r: _google_error(404, "videoNotFound"))
        with pytest.raises(YouTubeAPIError, match="404"):
            client.live_chat_id("v1")
