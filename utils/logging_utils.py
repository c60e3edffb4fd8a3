"""
Logging helpers for episode titles and other free text.
"""

from typing import Optional


def safe_log_text(text: Optional[str], max_length: int = 120) -> Optional[str]:
    """
    Render text ASCII-safe and bounded for log lines.

    Episode titles routinely carry emoji and non-Latin scripts, which some
    Windows consoles and log collectors cannot encode.

    Args:
        text: Input text that may contain Unicode characters
        max_length: Longest rendering before truncation with "..."

    Returns:
        ASCII-safe version of the text, or the input unchanged when empty
    """
    if not text:
        return text
    rendered = text.encode('ascii', 'replace').decode('ascii')
    if len(rendered) > max_length:
        rendered = rendered[:max_length - 3] + "..."
    return rendered
