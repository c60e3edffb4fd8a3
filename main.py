"""
CLI interface for the podcast worker.
"""

import asyncio
import argparse
import sys
import logging
from typing import List

from pydantic import ValidationError

from agents.docs_publisher import GoogleDocsPublisher
from agents.podcast_processor import PodcastProcessor
from agents.summarizer_agent import LLMProviderError, SummarizerAgent
from config.catalog import load_channel_catalog
from config.settings import Settings, get_settings
from models.channel import ChannelConfig
from models.result import ProcessingResult
from storage.gateway import SqlGateway
from tools.transcript_tools import YouTubeTranscriptSource
from tools.youtube_tools import YouTubeAPIClient, YouTubeVideoSource
from utils.error_utils import ConfigurationError

# Setup logging
logger = logging.getLogger(__name__)


def print_success(message: str) -> None:
    """Print success message."""
    print(f"[SUCCESS] {message}")


def print_error(message: str) -> None:
    """Print error message."""
    print(f"[ERROR] {message}")


def print_info(message: str) -> None:
    """Print info message."""
    print(f"[INFO] {message}")


def print_warning(message: str) -> None:
    """Print warning message."""
    print(f"[WARNING] {message}")


def load_configuration():
    """Load settings and the channel catalog; raises on missing configuration."""
    settings = get_settings()
    channels = load_channel_catalog(settings.channels_config_path)
    return settings, channels


async def build_processor(settings: Settings, channels: List[ChannelConfig]) -> PodcastProcessor:
    """Wire the production collaborators into a processor."""
    summarizer = SummarizerAgent(settings)
    gateway = await SqlGateway.connect(settings.database_url, echo=False)
    youtube_client = YouTubeAPIClient(settings.youtube_api_key, settings.youtube_requests_per_minute)
    publisher = GoogleDocsPublisher(
        settings.google_docs_document_id,
        settings.google_docs_client_email,
        settings.google_docs_private_key,
    )
    return PodcastProcessor(
        settings=settings,
        channels=channels,
        gateway=gateway,
        video_source=YouTubeVideoSource(youtube_client),
        transcript_source=YouTubeTranscriptSource(request_timeout=settings.transcript_timeout_seconds),
        summarizer=summarizer,
        publisher=publisher,
    )


def report_results(result: ProcessingResult) -> int:
    """Print the run summary and return the process exit code."""
    print_info("========================================")
    print_info("Processing Complete")
    print_info("========================================")
    print_info(f"Channels processed: {result.channels_processed}")
    print_info(f"Videos processed: {result.videos_processed}")
    print_info(f"Summaries generated: {result.summaries_generated}")

    if result.has_errors:
        print_warning(f"Errors encountered: {len(result.errors)}")
        for index, error in enumerate(result.errors, start=1):
            print_error(f"  {index}. [{error.scope.value}/{error.kind.value}] {error.subject}: {error.message}")
        return 1

    print_success("All operations completed successfully!")
    return 0


async def run_command() -> int:
    """Run one pass of the processing pipeline."""
    print_info("Pod Worker - YouTube Podcast Sync")

    try:
        settings, channels = load_configuration()
    except (ValidationError, ValueError, ConfigurationError) as e:
        print_error(f"Invalid configuration: {e}")
        return 1

    enabled = [channel for channel in channels if channel.enabled]
    print_success(f"Loaded config with {len(enabled)} enabled channels")

    try:
        processor = await build_processor(settings, channels)
    except LLMProviderError as e:
        print_error(f"Could not initialize summarizer: {e}")
        return 1

    try:
        result = await processor.run()
    finally:
        await processor.gateway.close()

    return report_results(result)


def channels_command() -> int:
    """List the channel catalog."""
    try:
        settings, channels = load_configuration()
    except (ValidationError, ValueError, ConfigurationError) as e:
        print_error(f"Invalid configuration: {e}")
        return 1

    print_info(f"Channel catalog: {settings.channels_config_path}")
    for channel in channels:
        status = "enabled" if channel.enabled else "disabled"
        print(f"  {channel.id}  {channel.name}  [{status}]")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        description="Podcast worker - summarize new YouTube episodes and publish them to Google Docs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py run          # Process new episodes and republish the document
  python main.py channels     # Show the configured channels
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    subparsers.add_parser("run", help="Run the processing pipeline once")
    subparsers.add_parser("channels", help="List configured channels")

    return parser


async def main() -> int:
    """Main CLI function."""
    parser = create_parser()
    args = parser.parse_args()

    if args.command == "run":
        return await run_command()

    if args.command == "channels":
        return channels_command()

    parser.print_help()
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print_info("\nOperation cancelled by user")
        sys.exit(130)
