"""YouTube Data API v3 client.

Single responsibility: issue the handful of read-only queries the archive
needs and return decoded resources. All HTTP interaction is encapsulated
here; callers only ever see dicts or YouTubeAPIError.
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

import httpx

logger = logging.getLogger(__name__)

API_BASE_URL = "https://www.googleapis.com/youtube/v3"

# liveChat/messages reasons meaning the session is over for good
CLOSED_CHAT_REASONS = frozenset({"liveChatEnded", "liveChatNotFound", "liveChatDisabled"})


class YouTubeAPIError(Exception):
    """Raised when an upstream query fails or returns an undecodable body.

    For HTTP error statuses, status_code and reason (the first error
    reason of the Google API error body) are set.
    """

    def __init__(self, message: str, status_code: int | None = None, reason: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


@dataclass
class ChatPage:
    """One page of liveChatMessages."""

    items: list[dict] = field(default_factory=list)
    next_page_token: str | None = None


class YouTubeDataClient:
    """Thin synchronous wrapper over the YouTube Data API.

    One call to any public method maps to exactly one upstream request,
    except the iterating/batching helpers which document their fan-out.
    """

    PLAYLIST_PAGE_SIZE = 50
    VIDEOS_BATCH_SIZE = 50  # videos.list id cap

    def __init__(
        self,
        api_key: str,
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Static API key sent with every request.
            timeout: Per-request timeout in seconds.
            http_client: Preconfigured httpx client (tests pass one with a
                         MockTransport). Its base_url must be API_BASE_URL.
        """
        self._api_key = api_key
        self._http = http_client or httpx.Client(base_url=API_BASE_URL, timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "YouTubeDataClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def uploads_playlist_id(self, channel_id: str) -> str:
        """Return the channel's uploads playlist ID.

        Raises:
            YouTubeAPIError: If the channel is unknown or the query fails.
        """
        data = self._get("channels", part="contentDetails", id=channel_id)
        items = data.get("items") or []
        try:
            return items[0]["contentDetails"]["relatedPlaylists"]["uploads"]
        except (IndexError, KeyError, TypeError):
            raise YouTubeAPIError(f"No uploads playlist for channel: {channel_id}") from None

    def iter_playlist_video_ids(self, playlist_id: str) -> Iterator[str]:
        """Yield every video ID of a playlist, newest first, one request per page."""
        page_token = ""
        while True:
            params = {
                "part": "contentDetails",
                "playlistId": playlist_id,
                "maxResults": self.PLAYLIST_PAGE_SIZE,
            }
            if page_token:
                params["pageToken"] = page_token
            data = self._get("playlistItems", **params)

            items = data.get("items")
            if not items:
                return
            for item in items:
                if not isinstance(item, dict):
                    continue
                video_id = (item.get("contentDetails") or {}).get("videoId")
                if video_id:
                    yield video_id

            page_token = data.get("nextPageToken") or ""
            if not page_token:
                return

    def list_videos(self, video_ids: list[str]) -> list[dict]:
        """Fetch snippet and liveStreamingDetails, one request per batch of 50 IDs."""
        resources = []
        for i in range(0, len(video_ids), self.VIDEOS_BATCH_SIZE):
            chunk = video_ids[i:i + self.VIDEOS_BATCH_SIZE]
            data = self._get("videos", part="liveStreamingDetails,snippet", id=",".join(chunk))
            resources.extend(data.get("items") or [])
        return resources

    def live_chat_id(self, video_id: str) -> str | None:
        """Return the video's active live chat handle, or None if it has none."""
        data = self._get("videos", part="liveStreamingDetails", id=video_id)
        items = data.get("items") or []
        if not items or not isinstance(items[0], dict):
            return None
        details = items[0].get("liveStreamingDetails") or {}
        return details.get("activeLiveChatId") or None

    def chat_page(self, live_chat_id: str, page_token: str = "", max_results: int = 200) -> ChatPage:
        """Fetch one page of chat messages for a live chat session.

        A session whose chat has closed (404, or a closed-chat reason on a
        403) yields an empty page rather than an error.
        """
        params = {
            "part": "snippet",
            "liveChatId": live_chat_id,
            "maxResults": max_results,
        }
        if page_token:
            params["pageToken"] = page_token
        try:
            data = self._get("liveChat/messages", **params)
        except YouTubeAPIError as e:
            if e.status_code == 404 or e.reason in CLOSED_CHAT_REASONS:
                logger.info("Chat session %s is closed (%s)", live_chat_id, e.reason or e.status_code)
                return ChatPage()
            raise
        return ChatPage(
            items=data.get("items") or [],
            next_page_token=data.get("nextPageToken") or None,
        )

    def search_upcoming(self, channel_id: str, max_results: int = 7) -> list[dict]:
        """Return search results for the channel's scheduled broadcasts."""
        data = self._get(
            "search",
            part="snippet",
            channelId=channel_id,
            eventType="upcoming",
            type="video",
            maxResults=max_results,
        )
        return data.get("items") or []

    def _get(self, endpoint: str, **params) -> dict:
        """Issue a GET and decode the JSON body."""
        params["key"] = self._api_key
        try:
            response = self._http.get(f"/{endpoint}", params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            reason = _error_reason(e.response)
            raise YouTubeAPIError(
                f"{endpoint} returned HTTP {e.response.status_code}"
                + (f" ({reason})" if reason else ""),
                status_code=e.response.status_code,
                reason=reason,
            ) from e
        except httpx.HTTPError as e:
            raise YouTubeAPIError(f"{endpoint} request failed: {e}") from e
        except ValueError as e:
            raise YouTubeAPIError(f"{endpoint} returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise YouTubeAPIError(f"{endpoint} returned unexpected payload")
        logger.debug("GET %s -> %d items", endpoint, len(data.get("items") or []))
        return data


def _error_reason(response: httpx.Response) -> str | None:
    """Extract error.errors[0].reason from a Google API error body, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    error = body.get("error") if isinstance(body, dict) else None
    errors = error.get("errors") if isinstance(error, dict) else None
    if not errors or not isinstance(errors[0], dict):
        return None
    return errors[0].get("reason") or None
