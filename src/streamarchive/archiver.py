"""Chat archiver — resumable, budgeted chat transcript fetching.

Each run visits at most ``videos_per_run`` candidate videos in registry
order. For every video the live chat session is resolved once, then chat
pages are pulled from the stored continuation token up to the policy's
page budget and merged into the video's transcript document.

Per video:  NOT_STARTED -> SESSION_RESOLVED -> FETCHING -> PARTIAL | COMPLETE

Transcript and cursor state are committed right after each video; the
registry is written once at the end of the run.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from streamarchive.ingestion.youtube_api import YouTubeAPIError, YouTubeDataClient
from streamarchive.merge import merge_messages
from streamarchive.models import (
    CursorState,
    TranscriptDocument,
    TranscriptMessage,
    VideoEntry,
    VideoStatus,
    utc_now_iso,
)
from streamarchive.registry import VideoRegistry
from streamarchive.storage.repository import CursorRepository, TranscriptRepository

logger = logging.getLogger(__name__)


class FetchState(str, Enum):
    """Where a video's chat fetch stands after an archiver visit."""

    NOT_STARTED = "not_started"
    SESSION_RESOLVED = "session_resolved"
    FETCHING = "fetching"
    PARTIAL = "partial"  # page budget hit with a token outstanding
    COMPLETE = "complete"  # upstream reported no further pages
    UNAVAILABLE = "unavailable"  # no chat session, recorded as terminal
    FAILED = "failed"  # upstream error; retried next run


@dataclass(frozen=True)
class ArchivePolicy:
    """Which videos an archiver instance targets and how much it may fetch.

    ended: bounded transcripts drained with a large page budget; running
        out of pages is terminal.
    live: open-ended chats polled cheaply; running out of pages only
        means "nothing new yet", so the token resets to "" rather than
        completing the video.
    """

    target_status: VideoStatus
    page_budget: int
    exhaustion_is_terminal: bool
    page_size: int = 200

    @classmethod
    def live(cls, page_budget: int = 10, page_size: int = 200) -> "ArchivePolicy":
        return cls(VideoStatus.LIVE, page_budget, exhaustion_is_terminal=False, page_size=page_size)

    @classmethod
    def ended(cls, page_budget: int = 1000, page_size: int = 200) -> "ArchivePolicy":
        return cls(VideoStatus.ENDED, page_budget, exhaustion_is_terminal=True, page_size=page_size)


@dataclass
class VideoOutcome:
    """What one archiver visit did to one video."""

    video_id: str
    state: FetchState = FetchState.NOT_STARTED
    pages: int = 0
    new_messages: int = 0
    error: str | None = None
    attempted: bool = True  # counted against videos_per_run


@dataclass
class ArchiveRunResult:
    """Outcome of one archiver run."""

    target_status: VideoStatus
    outcomes: list[VideoOutcome] = field(default_factory=list)

    @property
    def processed(self) -> int:
        """Videos that counted against the per-run budget."""
        return sum(1 for o in self.outcomes if o.attempted)

    @property
    def new_messages(self) -> int:
        return sum(o.new_messages for o in self.outcomes)


class ChatArchiver:
    """Advances chat transcripts for one target status under a fixed quota.

    The process is assumed to be the only writer of the registry, cursor
    store and transcripts for the duration of a run. There are no internal
    retries: a failed video keeps its last committed cursor and is picked
    up again by the next scheduled run.
    """

    def __init__(
        self,
        client: YouTubeDataClient,
        registry: VideoRegistry,
        cursors: CursorRepository,
        transcripts: TranscriptRepository,
        policy: ArchivePolicy,
        videos_per_run: int = 3,
        registry_path: Path | None = None,
    ) -> None:
        """Initialize the archiver.

        Args:
            client: Upstream API client.
            registry: Loaded video registry; chat_fetched is updated in place.
            cursors: Cursor store, committed after every changed video.
            transcripts: Transcript store, committed after every fetched video.
            policy: Target status and page budget.
            videos_per_run: Maximum videos attempted per run.
            registry_path: Where to flush the registry at the end of run().
                           If None the caller saves it.
        """
        self._client = client
        self._registry = registry
        self._cursors = cursors
        self._transcripts = transcripts
        self._policy = policy
        self._videos_per_run = videos_per_run
        self._registry_path = registry_path

    def run(self) -> ArchiveRunResult:
        """Process up to videos_per_run candidates, then flush the registry."""
        result = ArchiveRunResult(target_status=self._policy.target_status)
        cursor_map = self._cursors.load_all()
        processed = 0
        registry_dirty = False

        try:
            for entry in self._registry.candidates(self._policy.target_status):
                if processed >= self._videos_per_run:
                    break

                cursor = cursor_map.get(entry.video_id, CursorState())
                if cursor.is_terminal:
                    # Recorded unavailable on an earlier run whose registry write was lost
                    self._registry.mark_chat_fetched(entry.video_id)
                    registry_dirty = True
                    result.outcomes.append(
                        VideoOutcome(entry.video_id, state=FetchState.UNAVAILABLE, attempted=False)
                    )
                    continue

                outcome, new_cursor, terminal = self._process(entry, cursor)
                processed += 1
                result.outcomes.append(outcome)

                if terminal:
                    self._registry.mark_chat_fetched(entry.video_id)
                    registry_dirty = True
                previous = cursor_map.get(entry.video_id)
                if new_cursor is not None and (
                    previous is None or previous.to_json() != new_cursor.to_json()
                ):
                    cursor_map[entry.video_id] = new_cursor
                    self._cursors.save_all(cursor_map)
        finally:
            if registry_dirty and self._registry_path is not None:
                self._registry.save(self._registry_path)

        logger.info(
            "Chat archive (%s): %d processed, %d new messages",
            self._policy.target_status.value, result.processed, result.new_messages,
        )
        return result

    def _process(
        self, entry: VideoEntry, cursor: CursorState
    ) -> tuple[VideoOutcome, CursorState | None, bool]:
        """Run the state machine for one video.

        Returns:
            (outcome, cursor to persist or None if unchanged, whether
            the video's chat is now terminally fetched)
        """
        outcome = VideoOutcome(entry.video_id)

        # Session resolution
        if cursor.session_resolved:
            session_id = cursor.session_id
        else:
            try:
                session_id = self._client.live_chat_id(entry.video_id)
            except YouTubeAPIError as e:
                logger.warning("Session lookup failed for %s: %s", entry.video_id, e)
                outcome.state = FetchState.FAILED
                outcome.error = str(e)
                return outcome, None, False

        if session_id is None:
            logger.info("No chat session for %s; marking fetched", entry.video_id)
            outcome.state = FetchState.UNAVAILABLE
            return outcome, CursorState.unavailable(), True

        outcome.state = FetchState.SESSION_RESOLVED
        logger.info("Fetching chat for %s", entry.video_id)

        # Fetch loop
        outcome.state = FetchState.FETCHING
        token = cursor.resume_token
        fetched: list[TranscriptMessage] = []
        exhausted = False
        error: YouTubeAPIError | None = None

        while outcome.pages < self._policy.page_budget:
            try:
                page = self._client.chat_page(session_id, token, self._policy.page_size)
            except YouTubeAPIError as e:
                error = e
                break

            if not page.items:
                exhausted = True
                break

            fetched.extend(_decode_items(entry.video_id, page.items))
            outcome.pages += 1
            if not page.next_page_token:
                exhausted = True
                break
            token = page.next_page_token

        if fetched or exhausted:
            outcome.new_messages = self._commit_transcript(entry, fetched)

        if error is not None:
            logger.warning(
                "Chat fetch for %s stopped after %d pages: %s",
                entry.video_id, outcome.pages, error,
            )
            outcome.state = FetchState.FAILED
            outcome.error = str(error)
            # Resume from the page that failed
            return outcome, CursorState(session_id=session_id, continuation_token=token or None), False

        if exhausted:
            outcome.state = FetchState.COMPLETE
            if self._policy.exhaustion_is_terminal:
                return outcome, CursorState(session_id=session_id, continuation_token=None), True
            return outcome, CursorState(session_id=session_id, continuation_token=""), False

        outcome.state = FetchState.PARTIAL
        logger.info(
            "Page budget reached for %s after %d pages; resuming next run",
            entry.video_id, outcome.pages,
        )
        return outcome, CursorState(session_id=session_id, continuation_token=token), False

    def _commit_transcript(self, entry: VideoEntry, fetched: list[TranscriptMessage]) -> int:
        """Merge fetched messages into the stored transcript and rewrite it.

        Returns:
            Number of messages actually added.
        """
        document = self._transcripts.get(entry.channel_key, entry.video_id)
        if document is None:
            document = TranscriptDocument.empty_for(entry)

        before = len({m.identity_key for m in document.messages})
        merged = merge_messages(document.messages, fetched)
        updated = document.model_copy(update={
            "messages": merged,
            "fetched_at": utc_now_iso(),
        })
        self._transcripts.save(updated)
        return len(merged) - before


def _decode_items(video_id: str, items: list) -> list[TranscriptMessage]:
    """Decode one chat page, skipping items that do not decode."""
    messages = []
    for item in items:
        try:
            messages.append(TranscriptMessage.from_api_item(item))
        except ValueError as e:
            logger.warning("Skipping undecodable chat item for %s: %s", video_id, e)
    return messages
