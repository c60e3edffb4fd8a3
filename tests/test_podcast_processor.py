"""
Tests for the incremental podcast processing pipeline.
"""

from datetime import timedelta

import pytest

from agents.docs_publisher import PublishError
from agents.podcast_processor import PodcastProcessor
from conftest import (
    NOW, FakeVideoSource, channel_id, make_settings, make_video, video_id
)
from models.channel import ChannelConfig
from models.records import ChannelRecord, SummaryRecord, TranscriptRecord, VideoRecord
from models.video import PodcastSummary, VideoMetadata
from storage.memory import InMemoryGateway, InMemoryResource
from tools.youtube_tools import YouTubeAPIError
from utils.error_utils import ErrorKind, ErrorScope


def build_processor(settings, channels, gateway, video_source, transcript_source, summarizer, publisher):
    return PodcastProcessor(
        settings=settings,
        channels=channels,
        gateway=gateway,
        video_source=video_source,
        transcript_source=transcript_source,
        summarizer=summarizer,
        publisher=publisher,
        clock=lambda: NOW
    )


class TestPodcastProcessorRun:
    """Test the end-to-end run over configured channels"""

    @pytest.fixture
    def processor(self, settings, channel, gateway, video_source, transcript_source, summarizer, publisher):
        return build_processor(
            settings, [channel], gateway, video_source, transcript_source, summarizer, publisher
        )

    async def test_single_new_video_is_processed_and_published(
        self, processor, channel, gateway, video_source, summarizer, publisher
    ):
        video_source.videos[channel.id] = [make_video(1)]

        result = await processor.run()

        assert result.channels_processed == 1
        assert result.videos_processed == 1
        assert result.summaries_generated == 1
        assert result.errors == []

        transcript = await gateway.transcripts.get(video_id(1))
        assert transcript.content == "hello world"
        assert transcript.language == "en"

        stored = await gateway.summaries.get(video_id(1))
        assert stored.summary == "S"
        assert stored.key_topics == ["t1"]
        assert stored.highlights == ["h1"]
        assert stored.model == "test-model"

        video = await gateway.videos.get(video_id(1))
        assert video.has_transcript is True
        assert video.transcript_fetched_at == NOW
        assert video.duration_minutes == 10

        assert summarizer.calls == [("Episode 1", "hello world", "Channel One")]
        assert len(publisher.batches) == 1
        episodes = publisher.batches[0]["Channel One"]
        assert [episode.video_id for episode in episodes] == [video_id(1)]
        assert episodes[0].video_url == f"https://youtube.com/watch?v={video_id(1)}"

    async def test_channel_record_created_from_remote_metadata(
        self, processor, channel, gateway, video_source
    ):
        await processor.run()

        record = await gateway.channels.get(channel.id)
        assert record is not None
        assert record.title.startswith("Remote title")
        assert video_source.metadata_calls == [channel.id]

    async def test_existing_channel_is_not_refetched(self, processor, channel, gateway, video_source):
        await gateway.channels.upsert(ChannelRecord(id=channel.id, title="Stored"))

        await processor.run()

        assert video_source.metadata_calls == []
        assert (await gateway.channels.get(channel.id)).title == "Stored"

    async def test_second_run_is_idempotent(self, processor, channel, video_source, summarizer, transcript_source):
        video_source.videos[channel.id] = [make_video(1)]

        await processor.run()
        result = await processor.run()

        assert result.videos_processed == 0
        assert result.summaries_generated == 0
        assert result.channels_processed == 1
        assert len(summarizer.calls) == 1
        assert transcript_source.calls == [video_id(1)]

    async def test_item_failure_does_not_stop_channel(
        self, processor, channel, gateway, video_source, transcript_source
    ):
        video_source.videos[channel.id] = [make_video(1), make_video(2)]
        transcript_source.unavailable.add(video_id(1))

        result = await processor.run()

        assert result.videos_processed == 1
        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.scope == ErrorScope.VIDEO
        assert error.kind == ErrorKind.TRANSCRIPT_UNAVAILABLE
        assert error.video_id == video_id(1)
        assert error.channel_id == channel.id
        assert "No transcript available" in error.message

        assert await gateway.summaries.get(video_id(1)) is None
        assert await gateway.transcripts.get(video_id(2)) is not None
        assert await gateway.summaries.get(video_id(2)) is not None

    async def test_recency_window_excludes_old_videos(self, processor, channel, gateway, video_source, summarizer):
        video_source.videos[channel.id] = [
            make_video(1, days_ago=0),
            make_video(2, days_ago=29),
            make_video(3, days_ago=31),
        ]

        result = await processor.run()

        assert result.videos_processed == 2
        assert [call[0] for call in summarizer.calls] == ["Episode 1", "Episode 2"]
        assert await gateway.videos.get(video_id(3)) is None

    async def test_transcript_timeout_is_recorded(
        self, processor, channel, gateway, video_source, transcript_source, summarizer
    ):
        video_source.videos[channel.id] = [make_video(1, title="Slow Episode")]
        transcript_source.hanging.add(video_id(1))

        result = await processor.run()

        assert result.videos_processed == 0
        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.kind == ErrorKind.TIMEOUT
        assert "transcript fetch for 'Slow Episode'" in error.message
        assert "timed out after 0.05s" in error.message
        assert summarizer.calls == []
        assert await gateway.summaries.get(video_id(1)) is None

        video = await gateway.videos.get(video_id(1))
        assert video.has_transcript is False

    async def test_summary_timeout_keeps_transcript(
        self, processor, channel, gateway, video_source, summarizer
    ):
        video_source.videos[channel.id] = [make_video(1)]
        summarizer.hang = True

        result = await processor.run()

        assert result.summaries_generated == 0
        assert result.errors[0].kind == ErrorKind.TIMEOUT
        assert result.errors[0].message.startswith("summary for 'Episode 1'")
        assert await gateway.transcripts.get(video_id(1)) is not None
        assert (await gateway.videos.get(video_id(1))).has_transcript is True
        assert await gateway.summaries.get(video_id(1)) is None

    async def test_partially_processed_video_is_resumed(
        self, processor, channel, gateway, video_source, transcript_source, summarizer
    ):
        await gateway.videos.upsert(VideoRecord(
            id=video_id(1), channel_id=channel.id, title="Episode 1", has_transcript=True,
            published_at=NOW
        ))
        await gateway.transcripts.upsert(TranscriptRecord(video_id=video_id(1), content="stored text"))
        await gateway.videos.upsert(VideoRecord(
            id=video_id(2), channel_id=channel.id, title="Episode 2", has_transcript=True,
            published_at=NOW
        ))
        await gateway.transcripts.upsert(TranscriptRecord(video_id=video_id(2), content="done"))
        await gateway.summaries.upsert(SummaryRecord(video_id=video_id(2), summary="Done", model="test-model"))
        video_source.videos[channel.id] = [make_video(1), make_video(2)]

        result = await processor.run()

        assert result.videos_processed == 1
        assert transcript_source.calls == []
        assert summarizer.calls == [("Episode 1", "stored text", "Channel One")]
        assert (await gateway.videos.get(video_id(1))).has_transcript is True

    async def test_summarization_failure_is_recorded(self, processor, channel, video_source, summarizer):
        from agents.summarizer_agent import SummarizationError

        video_source.videos[channel.id] = [make_video(1)]
        summarizer.failure = SummarizationError("Unparseable model output")

        result = await processor.run()

        assert result.errors[0].kind == ErrorKind.SUMMARIZATION
        assert result.errors[0].scope == ErrorScope.VIDEO

    async def test_stored_transcript_without_flag_is_processed_once(
        self, processor, channel, gateway, video_source, transcript_source, summarizer
    ):
        await gateway.videos.upsert(VideoRecord(
            id=video_id(1), channel_id=channel.id, title="Episode 1", has_transcript=False,
            published_at=NOW
        ))
        await gateway.transcripts.upsert(TranscriptRecord(video_id=video_id(1), content="stored text"))
        video_source.videos[channel.id] = [make_video(1)]

        first = await processor.run()
        second = await processor.run()

        assert first.videos_processed == 1
        assert second.videos_processed == 0
        assert len(summarizer.calls) == 1
        assert transcript_source.calls == []

        video = await gateway.videos.get(video_id(1))
        assert video.has_transcript is True
        assert video.transcript_fetched_at == NOW


class TestOpaqueIdentifiers:
    """Test that channel and video identifiers need no particular shape"""

    async def test_single_item_scenario(self, settings, gateway, transcript_source, summarizer, publisher):
        c1 = ChannelConfig(id="C1", name="C1")
        v1 = VideoMetadata(
            video_id="V1",
            channel_id="C1",
            title="V1",
            published_at=NOW - timedelta(days=1),
            duration="PT10M"
        )
        video_source = FakeVideoSource({"C1": [v1]})
        processor = build_processor(
            settings, [c1], gateway, video_source, transcript_source, summarizer, publisher
        )

        result = await processor.run()

        assert result.channels_processed == 1
        assert result.videos_processed == 1
        assert result.summaries_generated == 1
        assert result.errors == []

        stored = await gateway.summaries.get("V1")
        assert (stored.summary, stored.key_topics, stored.highlights) == ("S", ["t1"], ["h1"])
        assert (await gateway.transcripts.get("V1")).content == "hello world"

        assert list(publisher.batches[0].keys()) == ["C1"]
        assert [episode.video_id for episode in publisher.batches[0]["C1"]] == ["V1"]


class TestChannelHandling:
    """Test channel-level isolation and filtering"""

    async def test_disabled_channel_is_never_queried(
        self, settings, gateway, video_source, transcript_source, summarizer, publisher
    ):
        disabled = ChannelConfig(id=channel_id(2), name="Off", enabled=False)
        video_source.videos[disabled.id] = [make_video(1, channel=2)]
        processor = build_processor(
            settings, [disabled], gateway, video_source, transcript_source, summarizer, publisher
        )

        result = await processor.run()

        assert video_source.list_calls == []
        assert result.channels_processed == 0
        assert result.videos_processed == 0
        assert publisher.batches == []

    async def test_channel_failure_does_not_stop_run(
        self, settings, gateway, video_source, transcript_source, summarizer, publisher
    ):
        first = ChannelConfig(id=channel_id(1), name="Broken")
        second = ChannelConfig(id=channel_id(2), name="Healthy")
        video_source.failures[first.id] = YouTubeAPIError("API error: 500")
        video_source.videos[second.id] = [make_video(5, channel=2)]
        processor = build_processor(
            settings, [first, second], gateway, video_source, transcript_source, summarizer, publisher
        )

        result = await processor.run()

        assert result.channels_processed == 1
        assert result.videos_processed == 1
        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.scope == ErrorScope.CHANNEL
        assert error.kind == ErrorKind.SOURCE
        assert error.channel_id == first.id
        assert video_source.list_calls == [first.id, second.id]

    async def test_channel_lookup_failure_falls_back_to_upsert(
        self, settings, channel, video_source, transcript_source, summarizer, publisher
    ):
        class FailingLookup(InMemoryResource):
            async def get(self, key):
                raise RuntimeError("database is locked")

        gateway = InMemoryGateway()
        gateway.channels = FailingLookup(ChannelRecord, "id")
        processor = build_processor(
            settings, [channel], gateway, video_source, transcript_source, summarizer, publisher
        )

        result = await processor.run()

        assert result.errors == []
        assert result.channels_processed == 1
        assert channel.id in gateway.channels.rows

    async def test_idempotency_check_failure_treats_all_as_new(
        self, settings, channel, gateway, video_source, transcript_source, summarizer, publisher
    ):
        class FailingList(InMemoryResource):
            async def list_where(self, *conditions, **kwargs):
                raise RuntimeError("query failed")

        gateway.summaries = FailingList(SummaryRecord, "video_id")
        video_source.videos[channel.id] = [make_video(1)]
        processor = build_processor(
            settings, [channel], gateway, video_source, transcript_source, summarizer, publisher
        )

        result = await processor.run()

        assert len(summarizer.calls) == 1
        assert result.videos_processed == 1
        # Publishing reads summaries too, so the same failure surfaces at run scope
        assert [error.scope for error in result.errors] == [ErrorScope.RUN]

    async def test_max_results_is_passed_to_source(
        self, channel, gateway, transcript_source, summarizer, publisher
    ):
        video_source = FakeVideoSource({channel.id: [make_video(n) for n in range(1, 6)]})
        processor = build_processor(
            make_settings(max_results_per_channel=3), [channel], gateway,
            video_source, transcript_source, summarizer, publisher
        )

        result = await processor.run()

        assert result.videos_processed == 3


class TestPublishing:
    """Test grouping and ordering of the published document"""

    async def test_groups_by_channel_newest_first(
        self, settings, gateway, video_source, transcript_source, summarizer, publisher
    ):
        older = ChannelConfig(id=channel_id(1), name="Older Show")
        newer = ChannelConfig(id=channel_id(2), name="Newer Show")
        video_source.videos[older.id] = [make_video(1, channel=1, days_ago=5), make_video(2, channel=1, days_ago=3)]
        video_source.videos[newer.id] = [make_video(3, channel=2, days_ago=1)]
        processor = build_processor(
            settings, [older, newer], gateway, video_source, transcript_source, summarizer, publisher
        )

        await processor.run()

        batch = publisher.batches[-1]
        assert list(batch.keys()) == ["Newer Show", "Older Show"]
        assert [episode.video_id for episode in batch["Older Show"]] == [video_id(2), video_id(1)]
        assert batch["Older Show"][0].duration == "PT10M"

    async def test_publish_failure_is_run_scoped(
        self, settings, channel, gateway, video_source, transcript_source, summarizer, publisher
    ):
        video_source.videos[channel.id] = [make_video(1)]
        publisher.failure = PublishError("Google Docs API error: 403")
        processor = build_processor(
            settings, [channel], gateway, video_source, transcript_source, summarizer, publisher
        )

        result = await processor.run()

        assert result.videos_processed == 1
        assert result.summaries_generated == 1
        assert len(result.errors) == 1
        assert result.errors[0].scope == ErrorScope.RUN
        assert result.errors[0].kind == ErrorKind.PUBLISH
        assert result.has_errors

    async def test_nothing_published_without_summaries(
        self, settings, channel, gateway, video_source, transcript_source, summarizer, publisher
    ):
        processor = build_processor(
            settings, [channel], gateway, video_source, transcript_source, summarizer, publisher
        )

        result = await processor.run()

        assert publisher.batches == []
        assert result.errors == []

    async def test_disabled_channel_summaries_are_not_published(
        self, settings, gateway, video_source, transcript_source, summarizer, publisher
    ):
        active = ChannelConfig(id=channel_id(1), name="Active")
        retired = ChannelConfig(id=channel_id(2), name="Retired", enabled=False)
        await gateway.videos.upsert(VideoRecord(
            id=video_id(9), channel_id=retired.id, title="Old", has_transcript=True, published_at=NOW
        ))
        await gateway.summaries.upsert(SummaryRecord(video_id=video_id(9), summary="Old summary", model="test-model"))
        video_source.videos[active.id] = [make_video(1)]
        processor = build_processor(
            settings, [active, retired], gateway, video_source, transcript_source, summarizer, publisher
        )

        await processor.run()

        assert list(publisher.batches[-1].keys()) == ["Active"]

    async def test_summary_content_is_published(
        self, settings, channel, gateway, video_source, transcript_source, publisher
    ):
        from conftest import FakeSummarizer

        summarizer = FakeSummarizer(PodcastSummary(
            summary="Deep dive", key_topics=["AI"], highlights=["One", "Two"]
        ))
        video_source.videos[channel.id] = [make_video(1, duration="PT1H5M")]
        processor = build_processor(
            settings, [channel], gateway, video_source, transcript_source, summarizer, publisher
        )

        await processor.run()

        episode = publisher.batches[0]["Channel One"][0]
        assert episode.summary == "Deep dive"
        assert episode.highlights == ["One", "Two"]
        assert episode.duration == "PT1H5M"
