"""System utility handlers - timers and no-op steps."""

import asyncio
from typing import Dict, Any

from core.logging import get_logger
from models.nodes import validate_node_params
from .registry import HandlerResult

logger = get_logger(__name__)


async def handle_system(parameters: Dict[str, Any], context: Dict[str, Any]) -> HandlerResult:
    """Run a built-in system step (e.g. "Wait 1 Hour" with ``waitSeconds``)."""
    params = validate_node_params("system", parameters)

    if params.wait_seconds <= 0:
        return HandlerResult(logs=["System step completed."])

    logger.info("[System] Timer started", seconds=params.wait_seconds)
    await asyncio.sleep(params.wait_seconds)
    return HandlerResult(
        output={"waitedSeconds": params.wait_seconds},
        logs=["Timer started...", "Timer fired."],
    )
