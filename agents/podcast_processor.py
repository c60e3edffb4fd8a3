"""
Incremental processing pipeline: fetch new episodes, transcribe, summarize,
persist, then republish the aggregate document.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Set

from config.settings import Settings
from models.channel import ChannelConfig, ChannelMetadata
from models.records import ChannelRecord, VideoRecord, TranscriptRecord, SummaryRecord
from models.result import ProcessingResult
from models.video import EpisodeRecord, PodcastSummary, VideoMetadata, video_url
from storage.gateway import PersistenceGateway, Where
from tools.transcript_tools import FetchedTranscript
from utils import safe_log_text
from utils.error_utils import ErrorScope, TranscriptUnavailableError, error_kind
from utils.timeouts import TimedOut, with_timeout

# Setup logging
logger = logging.getLogger(__name__)


class VideoSource(Protocol):
    async def list_recent_videos(self, channel_id: str, max_results: int) -> List[VideoMetadata]: ...

    async def get_channel_metadata(self, channel_id: str) -> Optional[ChannelMetadata]: ...


class TranscriptSource(Protocol):
    async def fetch_transcript(self, video_id: str) -> FetchedTranscript: ...


class Summarizer(Protocol):
    model_name: str

    async def summarize(self, title: str, transcript: str, channel_name: str) -> PodcastSummary: ...


class Publisher(Protocol):
    async def replace_all(self, channel_episodes: Dict[str, List[EpisodeRecord]]) -> None: ...


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PodcastProcessor:
    """Runs one sequential pass over every enabled channel."""

    def __init__(
        self,
        settings: Settings,
        channels: Sequence[ChannelConfig],
        gateway: PersistenceGateway,
        video_source: VideoSource,
        transcript_source: TranscriptSource,
        summarizer: Summarizer,
        publisher: Publisher,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.settings = settings
        self.channels = list(channels)
        self.gateway = gateway
        self.video_source = video_source
        self.transcript_source = transcript_source
        self.summarizer = summarizer
        self.publisher = publisher
        self.clock = clock or _utcnow

    @property
    def enabled_channels(self) -> List[ChannelConfig]:
        return [channel for channel in self.channels if channel.enabled]

    async def run(self) -> ProcessingResult:
        """
        Run the full processing pipeline.

        Channel and video failures are recorded in the result rather than
        raised; a failing channel never stops the remaining channels and a
        failing video never stops its channel.

        Returns:
            ProcessingResult with counts and the ordered error list
        """
        result = ProcessingResult()
        logger.info(f"Starting processor for {len(self.enabled_channels)} enabled channels...")

        for channel in self.channels:
            if not channel.enabled:
                logger.info(f"Skipping disabled channel: {safe_log_text(channel.name)}")
                continue

            try:
                logger.info(f"Processing channel: {safe_log_text(channel.name)}")
                await self._ensure_channel_exists(channel)
                videos_processed, summaries_generated = await self._process_channel(channel, result)
                result.videos_processed += videos_processed
                result.summaries_generated += summaries_generated
                result.channels_processed += 1
            except Exception as e:
                logger.error(f"Failed to process channel {safe_log_text(channel.name)}: {e}")
                result.record_error(
                    ErrorScope.CHANNEL, str(e), kind=error_kind(e), channel_id=channel.id
                )

        try:
            await self._publish()
        except Exception as e:
            logger.error(f"Failed to sync to Google Docs: {e}")
            result.record_error(ErrorScope.RUN, str(e), kind=error_kind(e))

        return result

    async def _ensure_channel_exists(self, channel: ChannelConfig) -> None:
        """Create the channel record on first sight."""
        try:
            existing = await self.gateway.channels.get(channel.id)
        except Exception as e:
            logger.warning(
                f"Could not verify channel {safe_log_text(channel.name)} in database: {e}. Will attempt upsert."
            )
            existing = None

        if existing:
            return

        metadata = await self.video_source.get_channel_metadata(channel.id)
        if metadata:
            record = ChannelRecord(
                id=channel.id,
                title=metadata.title or channel.name,
                description=metadata.description or None,
                thumbnail_url=metadata.thumbnail_url or None,
                subscriber_count=metadata.subscriber_count,
            )
        else:
            record = ChannelRecord(id=channel.id, title=channel.name)
        await self.gateway.channels.upsert(record)
        logger.info(f"Ensured channel {safe_log_text(record.title)} exists in database")

    async def _process_channel(self, channel: ChannelConfig, result: ProcessingResult):
        """
        Process the new videos of one channel.

        Returns:
            Tuple of (videos processed, summaries generated)
        """
        videos_processed = 0
        summaries_generated = 0

        videos = await self.video_source.list_recent_videos(
            channel.id, self.settings.max_results_per_channel
        )
        logger.info(f"Found {len(videos)} videos for {safe_log_text(channel.name)}")

        cutoff = self.clock() - timedelta(days=self.settings.days_to_look_back)
        recent_videos = [video for video in videos if _as_utc(video.published_at) > cutoff]
        logger.info(
            f"{len(recent_videos)} videos within last {self.settings.days_to_look_back} days"
        )

        processed_ids = await self._get_fully_processed_ids([video.video_id for video in recent_videos])
        new_videos = [video for video in recent_videos if video.video_id not in processed_ids]

        if not new_videos:
            logger.info(f"No new videos to process for {safe_log_text(channel.name)}")
            return videos_processed, summaries_generated

        logger.info(f"Processing {len(new_videos)} new videos for {safe_log_text(channel.name)}")

        for video in new_videos:
            try:
                await self._process_video(video, channel)
                videos_processed += 1
                summaries_generated += 1
                logger.info(f"Processed: {safe_log_text(video.title)}")
            except Exception as e:
                logger.error(f"Failed to process {safe_log_text(video.title)}: {e}")
                result.record_error(
                    ErrorScope.VIDEO,
                    str(e),
                    kind=error_kind(e),
                    channel_id=channel.id,
                    video_id=video.video_id
                )

        return videos_processed, summaries_generated

    async def _get_fully_processed_ids(self, video_ids: List[str]) -> Set[str]:
        """IDs of videos that already have both a transcript and a summary."""
        if not video_ids:
            return set()

        try:
            with_transcript = await self.gateway.videos.list_where(
                Where.in_("id", video_ids), Where.is_true("has_transcript")
            )
            summaries = await self.gateway.summaries.list_where(Where.in_("video_id", video_ids))
        except Exception as e:
            logger.error(f"Failed to check existing videos: {e}")
            return set()

        summarized = {summary.video_id for summary in summaries}
        return {video.id for video in with_transcript if video.id in summarized}

    async def _process_video(self, video: VideoMetadata, channel: ChannelConfig) -> None:
        """Upsert metadata, resolve the transcript, then generate and store the summary."""
        logger.info(f"Upserting metadata for {safe_log_text(video.title)}...")

        existing = await self.gateway.videos.get(video.video_id)
        record = VideoRecord(
            id=video.video_id,
            channel_id=channel.id,
            title=video.title,
            description=video.description,
            published_at=video.published_at,
            thumbnail_url=video.thumbnail_url,
            duration=video.duration,
            duration_minutes=round(video.duration_minutes),
            has_transcript=existing.has_transcript if existing else False,
            transcript_fetched_at=existing.transcript_fetched_at if existing else None,
        )
        await self.gateway.videos.upsert(record)

        transcript = await self._resolve_transcript(video, record)

        logger.info(f"Generating summary for {safe_log_text(video.title)}...")
        label = f"summary for '{video.title}'"
        outcome = await with_timeout(
            self.summarizer.summarize(video.title, transcript, channel.name),
            self.settings.summary_timeout_seconds,
            label
        )
        if isinstance(outcome, TimedOut):
            raise outcome.to_error()
        summary = outcome.value
        logger.info(f"Summary generated for {safe_log_text(video.title)}")

        await self.gateway.summaries.upsert(
            SummaryRecord(
                video_id=video.video_id,
                summary=summary.summary,
                key_topics=summary.key_topics,
                highlights=summary.highlights,
                model=self.summarizer.model_name,
                created_at=self.clock(),
            ),
            conflict_key="video_id"
        )

    async def _resolve_transcript(self, video: VideoMetadata, record: VideoRecord) -> str:
        """Reuse a stored transcript, or fetch, store and flag a new one."""
        existing = await self.gateway.transcripts.get(video.video_id)
        if existing and existing.content:
            logger.info(f"Using existing transcript for {safe_log_text(video.title)}")
            if not record.has_transcript:
                await self.gateway.videos.upsert(
                    record.model_copy(update={"has_transcript": True, "transcript_fetched_at": self.clock()})
                )
            return existing.content

        logger.info(f"Fetching transcript for {safe_log_text(video.title)}...")
        label = f"transcript fetch for '{video.title}'"
        try:
            outcome = await with_timeout(
                self.transcript_source.fetch_transcript(video.video_id),
                self.settings.transcript_timeout_seconds,
                label
            )
        except Exception as e:
            logger.warning(
                f"Skipping summary for {safe_log_text(video.title)} due to transcript error: {e}"
            )
            raise TranscriptUnavailableError(f"No transcript available: {e}") from e

        if isinstance(outcome, TimedOut):
            logger.warning(f"Skipping summary for {safe_log_text(video.title)}: {outcome.message}")
            raise outcome.to_error()

        fetched = outcome.value
        await self.gateway.transcripts.upsert(
            TranscriptRecord(video_id=video.video_id, content=fetched.text, language=fetched.language),
            conflict_key="video_id"
        )
        await self.gateway.videos.upsert(
            record.model_copy(update={"has_transcript": True, "transcript_fetched_at": self.clock()})
        )
        return fetched.text

    async def _publish(self) -> None:
        """Group every summarized episode of the enabled channels and republish."""
        enabled_ids = [channel.id for channel in self.enabled_channels]
        if not enabled_ids:
            logger.warning("No enabled channels to sync")
            return

        logger.info("Fetching summaries from database...")
        videos = await self.gateway.videos.list_where(
            Where.in_("channel_id", enabled_ids), order_by="published_at", descending=True
        )
        summaries = {
            summary.video_id: summary
            for summary in await self.gateway.summaries.list_where(
                Where.in_("video_id", [video.id for video in videos])
            )
        } if videos else {}

        summarized = [video for video in videos if video.id in summaries]
        if not summarized:
            logger.warning("No summaries found to sync")
            return

        channel_names = {channel.id: channel.name for channel in self.channels}
        channel_episodes: Dict[str, List[EpisodeRecord]] = {}

        for video in summarized:
            summary = summaries[video.id]
            channel_name = channel_names.get(video.channel_id) or video.channel_id
            channel_episodes.setdefault(channel_name, []).append(
                EpisodeRecord(
                    video_id=video.id,
                    title=video.title,
                    published_at=video.published_at,
                    duration=video.duration or "Unknown",
                    summary=summary.summary or "",
                    key_topics=summary.key_topics or [],
                    highlights=summary.highlights or [],
                    video_url=video_url(video.id),
                )
            )

        logger.info(
            f"Syncing {len(summarized)} episodes across {len(channel_episodes)} channels to Google Docs..."
        )
        await self.publisher.replace_all(channel_episodes)
