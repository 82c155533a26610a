"""JSON-file implementation of the transcript store."""

import logging
from pathlib import Path

from pydantic import ValidationError

from streamarchive.models import TranscriptDocument
from streamarchive.storage.jsonfile import read_json, write_json
from streamarchive.storage.repository import TranscriptRepository

logger = logging.getLogger(__name__)


class JsonTranscriptRepository(TranscriptRepository):
    """Stores each transcript at <root>/<channel_key>/<video_id>.json."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    def path_for(self, channel_key: str, video_id: str) -> Path:
        return self._root / channel_key / f"{video_id}.json"

    def get(self, channel_key: str, video_id: str) -> TranscriptDocument | None:
        """Load a transcript. A corrupt document is treated as absent."""
        path = self.path_for(channel_key, video_id)
        raw = read_json(path)
        if raw is None:
            return None
        try:
            return TranscriptDocument.model_validate(raw)
        except ValidationError as e:
            logger.warning("Ignoring invalid transcript %s: %s", path, e)
            return None

    def save(self, document: TranscriptDocument) -> None:
        write_json(self.path_for(document.channel_key, document.video_id), document.to_json())

    def exists(self, channel_key: str, video_id: str) -> bool:
        return self.path_for(channel_key, video_id).exists()
