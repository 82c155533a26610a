"""Core orchestration for streamarchive."""

import logging
from collections import Counter
from dataclasses import dataclass, field

from streamarchive.archiver import ArchivePolicy, ArchiveRunResult, ChatArchiver
from streamarchive.channels import ChannelDirectory
from streamarchive.config import Settings, settings as default_settings
from streamarchive.discovery import ChannelDiscovery, DiscoveryResult
from streamarchive.ingestion.youtube_api import YouTubeDataClient
from streamarchive.models import VideoStatus
from streamarchive.registry import VideoRegistry
from streamarchive.schedule import ScheduleCache
from streamarchive.storage.cursors import JsonCursorRepository
from streamarchive.storage.transcripts import JsonTranscriptRepository

logger = logging.getLogger(__name__)


class UnknownArchiveModeError(ValueError):
    """Raised when an archive mode other than live/ended is requested."""


@dataclass
class RegistrySummary:
    """Counts for a quick look at the archive state."""

    total: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    chat_fetched: int = 0
    pending: dict[str, int] = field(default_factory=dict)


class ArchiveService:
    """Single orchestration point for every archive operation.

    The CLI is a thin wrapper over this class. The channel directory and
    settings are passed in explicitly; the upstream client is created on
    first use so read-only operations work without a credential.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        channels: ChannelDirectory | None = None,
        client: YouTubeDataClient | None = None,
    ) -> None:
        self._settings = settings or default_settings
        self._channels = channels or self._load_channels(self._settings)
        self._client = client
        self._cursors = JsonCursorRepository(self._settings.cursor_path)
        self._transcripts = JsonTranscriptRepository(self._settings.transcripts_dir)

    @staticmethod
    def _load_channels(settings: Settings) -> ChannelDirectory:
        if settings.channels_file:
            return ChannelDirectory.from_file(settings.channels_file)
        return ChannelDirectory.default()

    @property
    def channels(self) -> ChannelDirectory:
        return self._channels

    def _get_client(self) -> YouTubeDataClient:
        """Return the upstream client, creating it on first use.

        Raises:
            MissingCredentialError: If no API key is configured.
        """
        if self._client is None:
            self._client = YouTubeDataClient(
                api_key=self._settings.require_api_key(),
                timeout=self._settings.request_timeout,
            )
        return self._client

    def discover(self) -> DiscoveryResult:
        """Refresh the video registry from every tracked channel."""
        client = self._get_client()
        self._settings.ensure_dirs()
        registry = VideoRegistry.load(self._settings.registry_path)
        discovery = ChannelDiscovery(
            client,
            self._channels,
            incremental=self._settings.incremental_discovery,
        )
        result = discovery.run(registry)
        registry.save(self._settings.registry_path)
        logger.info(
            "Registry updated: %d videos (%d new, %d refreshed)",
            len(registry), result.inserted, result.updated,
        )
        return result

    def archive(self, mode: str | VideoStatus) -> ArchiveRunResult:
        """Run the chat archiver for "live" or "ended" videos.

        Raises:
            UnknownArchiveModeError: If mode is not live or ended.
            RegistryNotFoundError: If discovery has never written the registry.
            MissingCredentialError: If no API key is configured.
        """
        policy = self.policy_for(mode)
        client = self._get_client()
        self._settings.ensure_dirs()
        registry = VideoRegistry.load(self._settings.registry_path, required=True)
        archiver = ChatArchiver(
            client=client,
            registry=registry,
            cursors=self._cursors,
            transcripts=self._transcripts,
            policy=policy,
            videos_per_run=self._settings.videos_per_run,
            registry_path=self._settings.registry_path,
        )
        return archiver.run()

    def policy_for(self, mode: str | VideoStatus) -> ArchivePolicy:
        try:
            status = VideoStatus(mode)
        except ValueError:
            raise UnknownArchiveModeError(f"Unknown archive mode: {mode}") from None

        s = self._settings
        if status == VideoStatus.LIVE:
            return ArchivePolicy.live(s.live_page_budget, s.chat_page_size)
        if status == VideoStatus.ENDED:
            return ArchivePolicy.ended(s.ended_page_budget, s.chat_page_size)
        raise UnknownArchiveModeError(f"Upcoming broadcasts have no chat to archive: {mode}")

    def refresh_schedule(self) -> dict:
        """Rewrite the upcoming-schedule and standing-video cache documents."""
        cache = ScheduleCache(
            self._get_client(),
            self._channels,
            per_channel=self._settings.upcoming_per_channel,
        )
        return cache.write(self._settings.schedule_path, self._settings.standing_path)

    def sync(self) -> tuple[DiscoveryResult, list[ArchiveRunResult]]:
        """Discover, then drain ended chats, then poll live chats."""
        discovered = self.discover()
        runs = [self.archive(VideoStatus.ENDED), self.archive(VideoStatus.LIVE)]
        return discovered, runs

    def status(self) -> RegistrySummary:
        """Summarize the registry without contacting upstream."""
        registry = VideoRegistry.load(self._settings.registry_path)
        summary = RegistrySummary(total=len(registry))
        statuses = Counter()
        pending = Counter()
        for entry in registry:
            statuses[entry.status.value] += 1
            if entry.chat_fetched:
                summary.chat_fetched += 1
            else:
                pending[entry.status.value] += 1
        summary.by_status = dict(statuses)
        summary.pending = dict(pending)
        return summary
