"""Gmail handler (simulated SMTP delivery)."""

import uuid
from typing import Dict, Any

from core.logging import get_logger
from models.nodes import validate_node_params
from .registry import HandlerResult

logger = get_logger(__name__)


async def handle_gmail(parameters: Dict[str, Any], context: Dict[str, Any]) -> HandlerResult:
    """Send an email.

    Args:
        parameters: Resolved node config (to, subject, body)
        context: Run context

    Returns:
        HandlerResult with the message id
    """
    params = validate_node_params("gmail", parameters)
    message_id = f"msg-{uuid.uuid4().hex[:10]}"

    logger.info("[Gmail] Sending email", to=params.to, subject=params.subject)
    return HandlerResult(
        output={"emailSent": True, "emailTo": params.to, "messageId": message_id},
        logs=[
            "Connecting to SMTP server...",
            "Authenticating...",
            f"Email sent to {params.to}",
        ],
    )
