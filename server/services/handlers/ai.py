"""AI text generation handler (simulated LLM call)."""

from typing import Dict, Any

from core.logging import get_logger
from models.nodes import validate_node_params
from .registry import HandlerResult

logger = get_logger(__name__)

SIMULATED_SUMMARY = "This is a simulated AI summary of the content."


async def handle_ai(parameters: Dict[str, Any], context: Dict[str, Any]) -> HandlerResult:
    """Summarise the prompt.

    Args:
        parameters: Resolved node config (prompt, model)
        context: Run context

    Returns:
        HandlerResult with ``aiSummary``
    """
    params = validate_node_params("ai", parameters)
    tokens = len(params.prompt.split())

    logger.info("[AI] Generating summary", model=params.model, prompt_tokens=tokens)
    return HandlerResult(
        output={"aiSummary": SIMULATED_SUMMARY, "aiModel": params.model},
        logs=[
            f"Sending prompt to LLM ({params.model})...",
            f"Tokens processed: {tokens}",
        ],
    )
