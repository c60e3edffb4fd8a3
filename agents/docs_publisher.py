"""
Publishes grouped episode summaries into a Google Doc, replacing its content.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from models.video import EpisodeRecord
from utils.duration import format_duration
from utils.error_utils import ErrorKind, PipelineError

logger = logging.getLogger(__name__)

DOCS_SCOPES = ["https://www.googleapis.com/auth/documents"]
TOKEN_URI = "https://oauth2.googleapis.com/token"
LINK_TEXT = "Watch on YouTube"
CHANNEL_SEPARATOR = "\n---\n\n"


class PublishError(PipelineError):
    """Writing to the document failed."""
    kind = ErrorKind.PUBLISH


def doc_length(text: str) -> int:
    """Length of text in Docs API index units (UTF-16 code units)."""
    return len(text.encode("utf-16-le")) // 2


def format_publish_date(published_at: datetime) -> str:
    return f"{published_at:%b} {published_at.day}, {published_at.year}"


class DocumentBuilder:
    """Accumulates batchUpdate requests while tracking the insertion index."""

    def __init__(self, start_index: int = 1):
        self.index = start_index
        self.requests: List[Dict[str, Any]] = []

    def insert(self, text: str) -> Tuple[int, int]:
        start = self.index
        self.requests.append({
            "insertText": {"location": {"index": start}, "text": text}
        })
        self.index += doc_length(text)
        return start, self.index

    def paragraph_style(self, start: int, end: int, style: str) -> None:
        self.requests.append({
            "updateParagraphStyle": {
                "range": {"startIndex": start, "endIndex": end},
                "paragraphStyle": {"namedStyleType": style},
                "fields": "namedStyleType",
            }
        })

    def bold(self, start: int, end: int) -> None:
        self.requests.append({
            "updateTextStyle": {
                "range": {"startIndex": start, "endIndex": end},
                "textStyle": {"bold": True},
                "fields": "bold",
            }
        })

    def link(self, start: int, end: int, url: str) -> None:
        self.requests.append({
            "updateTextStyle": {
                "range": {"startIndex": start, "endIndex": end},
                "textStyle": {"link": {"url": url}},
                "fields": "link",
            }
        })

    def bullets(self, start: int, end: int) -> None:
        self.requests.append({
            "createParagraphBullets": {
                "range": {"startIndex": start, "endIndex": end},
                "bulletPreset": "BULLET_DISC_CIRCLE_SQUARE",
            }
        })

    def labelled_line(self, label: str, value: str) -> None:
        start, _ = self.insert(f"{label} {value}\n\n")
        self.bold(start, start + doc_length(label))

    def episode(self, episode: EpisodeRecord) -> None:
        start, _ = self.insert(f"{episode.title}\n")
        self.paragraph_style(start, self.index, "HEADING_2")

        self.insert(f"{format_publish_date(episode.published_at)} • {format_duration(episode.duration)}\n\n")
        self.labelled_line("Summary:", episode.summary)
        self.labelled_line("Key Topics:", ", ".join(episode.key_topics))

        start, end = self.insert("Highlights:\n")
        self.bold(start, end - 1)
        if episode.highlights:
            start, _ = self.insert("".join(f"{highlight}\n" for highlight in episode.highlights))
            self.bullets(start, self.index)
        self.insert("\n")

        start, _ = self.insert(f"{LINK_TEXT}\n\n")
        self.link(start, start + doc_length(LINK_TEXT), episode.video_url)


def build_document_requests(channel_episodes: Mapping[str, Sequence[EpisodeRecord]]) -> List[Dict[str, Any]]:
    """
    Build the batchUpdate requests that render every channel's episodes.

    Args:
        channel_episodes: Channel display name to episodes, in display order

    Returns:
        Docs API requests, to be applied to an empty document
    """
    builder = DocumentBuilder()
    channel_names = list(channel_episodes.keys())

    for channel_position, channel_name in enumerate(channel_names):
        start, _ = builder.insert(f"{channel_name}\n\n")
        builder.paragraph_style(start, start + doc_length(channel_name) + 1, "HEADING_1")

        episodes = channel_episodes[channel_name]
        for episode_position, episode in enumerate(episodes):
            builder.episode(episode)
            if episode_position < len(episodes) - 1:
                builder.insert("\n")

        if channel_position < len(channel_names) - 1:
            builder.insert(CHANNEL_SEPARATOR)

    return builder.requests


class GoogleDocsPublisher:
    """Publisher that fully replaces the content of one Google Doc."""

    def __init__(self, document_id: str, client_email: str, private_key: str, service=None):
        self.document_id = document_id
        self.client_email = client_email
        self.private_key = private_key
        self._service = service

    @property
    def service(self):
        if self._service is None:
            credentials = service_account.Credentials.from_service_account_info(
                {
                    "type": "service_account",
                    "client_email": self.client_email,
                    "private_key": self.private_key,
                    "token_uri": TOKEN_URI,
                },
                scopes=DOCS_SCOPES,
            )
            self._service = build("docs", "v1", credentials=credentials, cache_discovery=False)
        return self._service

    def _clear_document(self) -> None:
        """Delete everything except the mandatory trailing newline."""
        document = self.service.documents().get(documentId=self.document_id).execute()
        content = document.get("body", {}).get("content", [])
        end_index: Optional[int] = content[-1].get("endIndex") if content else None

        # endIndex points one past the last character
        if not end_index or end_index - 1 <= 1:
            logger.info("Document is already empty")
            return

        self.service.documents().batchUpdate(
            documentId=self.document_id,
            body={"requests": [{
                "deleteContentRange": {"range": {"startIndex": 1, "endIndex": end_index - 1}}
            }]},
        ).execute()
        logger.info("Cleared document content")

    def _replace_all_sync(self, channel_episodes: Mapping[str, Sequence[EpisodeRecord]]) -> None:
        self._clear_document()

        requests = build_document_requests(channel_episodes)
        self.service.documents().batchUpdate(
            documentId=self.document_id,
            body={"requests": requests},
        ).execute()

    async def replace_all(self, channel_episodes: Mapping[str, Sequence[EpisodeRecord]]) -> None:
        """
        Replace the document's content with the grouped episodes.

        Args:
            channel_episodes: Channel display name to newest-first episodes
        """
        if not channel_episodes:
            logger.warning("No content to sync to Google Doc")
            return

        logger.info(f"Starting Google Docs sync of {len(channel_episodes)} channels...")
        try:
            await asyncio.to_thread(self._replace_all_sync, channel_episodes)
        except HttpError as e:
            raise PublishError(f"Google Docs API error: {e}") from e

        logger.info(f"Synced {len(channel_episodes)} channels to Google Doc")
