"""Abstract repository interfaces for archive state."""

from abc import ABC, abstractmethod

from streamarchive.models import CursorState, TranscriptDocument


class CursorRepository(ABC):
    """Durable mapping of video_id -> CursorState.

    Kept separate from the video registry so pagination progress
    survives even if a registry rewrite is lost.
    """

    @abstractmethod
    def load_all(self) -> dict[str, CursorState]:
        """Load every cursor. A corrupt or missing store loads as empty."""

    @abstractmethod
    def save_all(self, cursors: dict[str, CursorState]) -> None:
        """Persist every cursor, replacing the stored mapping."""


class TranscriptRepository(ABC):
    """One transcript document per video, grouped by channel key."""

    @abstractmethod
    def get(self, channel_key: str, video_id: str) -> TranscriptDocument | None:
        """Load a transcript. Returns None if absent or corrupt."""

    @abstractmethod
    def save(self, document: TranscriptDocument) -> None:
        """Fully rewrite the transcript document."""

    @abstractmethod
    def exists(self, channel_key: str, video_id: str) -> bool:
        """Check whether a transcript document is stored."""
