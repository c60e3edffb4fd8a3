"""
Pipeline agents: summarization, publishing and orchestration.
"""

from .summarizer_agent import SummarizerAgent
from .docs_publisher import GoogleDocsPublisher
from .podcast_processor import PodcastProcessor

__all__ = [
    "SummarizerAgent",
    "GoogleDocsPublisher",
    "PodcastProcessor"
]
