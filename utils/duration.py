"""
ISO 8601 duration helpers.
"""

import re

_DURATION_PATTERN = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def _duration_parts(duration: str):
    if not duration:
        return None
    match = _DURATION_PATTERN.search(duration)
    if not match or not any(match.groups()):
        return None
    hours, minutes, seconds = (int(part) if part else 0 for part in match.groups())
    return hours, minutes, seconds


def parse_duration(duration: str) -> float:
    """
    Convert an ISO 8601 duration token (e.g. PT1H2M30S) to minutes.

    Args:
        duration: Duration token as returned by the YouTube API

    Returns:
        Duration in minutes, 0 if the token cannot be parsed
    """
    parts = _duration_parts(duration)
    if parts is None:
        return 0.0
    hours, minutes, seconds = parts
    return hours * 60 + minutes + seconds / 60


def format_duration(duration: str) -> str:
    """Render a duration token as "1h 5m" style text."""
    parts = _duration_parts(duration)
    if parts is None:
        return duration

    hours, minutes, _ = parts
    rendered = []
    if hours > 0:
        rendered.append(f"{hours}h")
    if minutes > 0:
        rendered.append(f"{minutes}m")
    return " ".join(rendered) or "0m"
