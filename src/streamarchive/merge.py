"""Chat message merge — append-only, deduplicated by identity key."""

from collections.abc import Iterable
from datetime import datetime, timezone

from streamarchive.models import TranscriptMessage, parse_timestamp

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def merge_messages(
    existing: list[TranscriptMessage],
    incoming: Iterable[TranscriptMessage],
) -> list[TranscriptMessage]:
    """Merge a newly fetched batch into an existing transcript.

    Every distinct existing message is kept. A message is added only if
    no message with the same (timestamp, text) is already present, so
    repeats within the batch, and repeats an older transcript may already
    hold, collapse to their first occurrence. The result is stable-sorted
    ascending by parsed timestamp; unparseable timestamps sort first.

    Page tokens are not stable across runs, so position cannot be used
    to detect already-stored messages. Two genuinely distinct messages
    that share a timestamp and text collapse into one.
    """
    seen: set[tuple[str, str]] = set()
    merged = []
    for batch in (existing, incoming):
        for message in batch:
            key = message.identity_key
            if key in seen:
                continue
            seen.add(key)
            merged.append(message)
    merged.sort(key=_sort_key)
    return merged


def _sort_key(message: TranscriptMessage) -> datetime:
    # ISO strings with and without fractional seconds do not sort lexically
    return parse_timestamp(message.timestamp) or _EARLIEST
