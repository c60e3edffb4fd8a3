"""
Static catalog of tracked channels.
"""

import json
import logging
from pathlib import Path
from typing import List

from pydantic import ValidationError

from models.channel import ChannelConfig
from utils.error_utils import ConfigurationError

logger = logging.getLogger(__name__)


def load_channel_catalog(path: str) -> List[ChannelConfig]:
    """
    Load the channel catalog from a channels.json file.

    Args:
        path: Path to a JSON document of the form {"channels": [...]}

    Returns:
        Channel configurations in declaration order
    """
    config_path = Path(path)
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Failed to load channels.json from {config_path}. Make sure the file exists. ({e})"
        ) from e

    try:
        channels = [ChannelConfig(**entry) for entry in data.get("channels", [])]
    except (ValidationError, TypeError, AttributeError) as e:
        raise ConfigurationError(f"Invalid channel entry in {config_path}: {e}") from e

    enabled = sum(1 for channel in channels if channel.enabled)
    logger.info(f"Loaded {len(channels)} channels ({enabled} enabled) from {config_path}")
    return channels
