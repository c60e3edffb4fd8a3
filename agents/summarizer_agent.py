"""
Podcast summarization agent using LLM providers with retry logic.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import BaseModel, Field, ValidationError

from config.settings import Settings
from models.video import PodcastSummary
from utils import safe_log_text
from utils.error_utils import ErrorKind, PipelineError

# Setup logging
logger = logging.getLogger(__name__)

# Anthropic models reject output caps above this
ANTHROPIC_MAX_OUTPUT_TOKENS = 8192

# Custom exceptions
class SummarizationError(PipelineError):
    """Base summarization error: the model call failed or produced no usable output."""
    kind = ErrorKind.SUMMARIZATION

class LLMProviderError(SummarizationError):
    """LLM provider error."""
    pass


class SummaryOutput(BaseModel):
    """Structured output schema requested from the model."""

    summary: str = Field(..., description="2-3 sentence overview of the episode")
    key_topics: List[str] = Field(..., description="3-5 key topics discussed in the episode")
    highlights: List[str] = Field(..., description="3-5 notable highlights, insights, or takeaways")
    duration: Optional[str] = Field(None, description='Optional human-friendly duration (e.g., "42m" or "1h 05m")')


SYSTEM_PROMPT = (
    "You are an expert at analyzing and summarizing podcast content. "
    "Return crisp, engaging summaries that stay true to the transcript."
)


def build_messages(title: str, transcript: str, channel_name: str) -> list:
    """Create the chat messages for one episode."""
    prompt = "\n".join([
        f'Podcast title: "{title}" from channel "{channel_name}".',
        "Full transcript:",
        transcript,
        "",
        "Provide:",
        "1) A concise 2-3 sentence summary of the main topic.",
        "2) 3-5 key topics discussed.",
        "3) 3-5 notable highlights or insights.",
    ])
    return [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=prompt)]


class SummarizerAgent:
    """Agent for summarizing podcast transcripts using LLM providers."""

    def __init__(self, settings: Settings, llm=None, max_retries: int = 2, retry_delay: float = 1.0):
        self.settings = settings
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.llm = llm or self._initialize_llm()
        self.structured_llm = self.llm.with_structured_output(SummaryOutput)
        self.request_count = 0

    @property
    def model_name(self) -> str:
        return self.settings.llm_model

    def _initialize_llm(self):
        """Initialize LLM based on provider setting."""
        try:
            if self.settings.llm_provider == "openai":
                from langchain_openai import ChatOpenAI

                if not self.settings.openai_api_key:
                    raise ValueError("OpenAI API key not provided")

                return ChatOpenAI(
                    api_key=self.settings.openai_api_key,
                    model=self.settings.llm_model,
                    max_tokens=self.settings.llm_max_output_tokens,
                    timeout=self.settings.summary_timeout_seconds
                )

            elif self.settings.llm_provider == "anthropic":
                # Import here to avoid dependency issues if not using Anthropic
                try:
                    from langchain_anthropic import ChatAnthropic
                except ImportError:
                    raise ImportError("langchain-anthropic not installed. Run: pip install 'pod-worker[anthropic]'")

                if not self.settings.anthropic_api_key:
                    raise ValueError("Anthropic API key not provided")

                return ChatAnthropic(
                    api_key=self.settings.anthropic_api_key,
                    model=self.settings.llm_model,
                    temperature=0.1,
                    max_tokens=min(self.settings.llm_max_output_tokens, ANTHROPIC_MAX_OUTPUT_TOKENS),
                    timeout=self.settings.summary_timeout_seconds
                )

            elif self.settings.llm_provider == "gemini":
                # Import here to avoid dependency issues if not using Gemini
                try:
                    from langchain_google_genai import ChatGoogleGenerativeAI
                except ImportError:
                    raise ImportError("langchain-google-genai not installed. Run: pip install 'pod-worker[gemini]'")

                if not self.settings.gemini_api_key:
                    raise ValueError("Gemini API key not provided")

                return ChatGoogleGenerativeAI(
                    google_api_key=self.settings.gemini_api_key,
                    model=self.settings.llm_model,
                    temperature=0,
                    max_tokens=self.settings.llm_max_output_tokens,
                    max_retries=2,
                )

            else:
                raise ValueError(f"Unsupported LLM provider: {self.settings.llm_provider}")

        except Exception as e:
            logger.error(f"Failed to initialize LLM provider {self.settings.llm_provider}: {e}")
            raise LLMProviderError(f"LLM initialization failed: {e}")

    async def summarize(self, title: str, transcript: str, channel_name: str) -> PodcastSummary:
        """
        Summarize a podcast episode from its transcript.

        Args:
            title: Episode title
            transcript: Full transcript text
            channel_name: Display name of the channel

        Returns:
            PodcastSummary with synopsis, key topics and highlights
        """
        start_time = datetime.now(timezone.utc)
        logger.info(f"Starting summarization for {safe_log_text(title)} ({len(transcript)} chars)")

        messages = build_messages(title, transcript, channel_name)
        summary = await self._summarize_with_retry(messages)

        processing_time = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.info(f"Summarized {safe_log_text(title)} in {processing_time:.2f}s")
        return summary

    async def _summarize_with_retry(self, messages: list) -> PodcastSummary:
        """
        Invoke the model with exponential backoff retry logic.

        Args:
            messages: Chat messages for the episode

        Returns:
            Parsed PodcastSummary
        """
        for attempt in range(self.max_retries):
            try:
                self.request_count += 1
                output = await self.structured_llm.ainvoke(messages)

                if output is None:
                    raise SummarizationError("Empty response from LLM")

                summary = PodcastSummary(
                    summary=output.summary,
                    key_topics=[topic.strip() for topic in output.key_topics if topic.strip()],
                    highlights=[item.strip() for item in output.highlights if item.strip()],
                    duration=output.duration or None
                )

                if len(summary.key_topics) < 3 or len(summary.highlights) < 3:
                    logger.warning(
                        f"Summary has {len(summary.key_topics)} topics and "
                        f"{len(summary.highlights)} highlights, may be low quality"
                    )

                return summary

            except ValidationError as e:
                error = SummarizationError(f"Unparseable response from LLM: {e}")
            except SummarizationError as e:
                error = e
            except Exception as e:
                error = SummarizationError(f"LLM call failed: {e}")

            attempt_num = attempt + 1
            logger.warning(f"Summarization attempt {attempt_num}/{self.max_retries} failed: {error}")

            if attempt_num == self.max_retries:
                raise SummarizationError(f"Failed to generate podcast summary after {self.max_retries} attempts: {error}")

            # Exponential backoff with jitter
            base_delay = self.retry_delay * 2 ** attempt
            delay = base_delay + 0.1 * base_delay
            logger.info(f"Retrying in {delay:.2f} seconds...")
            await asyncio.sleep(delay)

        raise SummarizationError("Unexpected end of retry loop")

    def get_stats(self) -> dict:
        """Get summarizer statistics."""
        return {
            "provider": self.settings.llm_provider,
            "model": self.settings.llm_model,
            "requests_made": self.request_count
        }
