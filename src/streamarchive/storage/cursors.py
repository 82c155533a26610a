"""JSON-file implementation of the cursor store."""

import logging
from pathlib import Path

from pydantic import ValidationError

from streamarchive.models import CursorState
from streamarchive.storage.jsonfile import read_json, write_json
from streamarchive.storage.repository import CursorRepository

logger = logging.getLogger(__name__)


class JsonCursorRepository(CursorRepository):
    """Cursor store backed by a single JSON object keyed by video ID."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load_all(self) -> dict[str, CursorState]:
        """Load every cursor, skipping entries that do not decode."""
        raw = read_json(self._path)
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            logger.warning("Cursor store %s is not a JSON object; starting cold", self._path)
            return {}

        cursors = {}
        for video_id, data in raw.items():
            try:
                cursors[video_id] = CursorState.model_validate(data)
            except ValidationError as e:
                logger.warning("Dropping unreadable cursor for %s: %s", video_id, e)
        return cursors

    def save_all(self, cursors: dict[str, CursorState]) -> None:
        write_json(self._path, {vid: state.to_json() for vid, state in cursors.items()})
