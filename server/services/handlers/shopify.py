"""Shopify handler (simulated order lookup/update)."""

import random
from typing import Dict, Any

from core.logging import get_logger
from models.nodes import validate_node_params
from .registry import HandlerResult

logger = get_logger(__name__)


async def handle_shopify(parameters: Dict[str, Any], context: Dict[str, Any]) -> HandlerResult:
    """Fetch (and optionally update) an order.

    Uses ``orderId`` from config, then from the run context, and otherwise
    invents one the way the storefront demo does.
    """
    params = validate_node_params("shopify", parameters)
    order_id = params.order_id or context.get("orderId") or f"#SH-{random.randint(0, 9999)}"

    logs = ["Fetching order data...", "Rate limit check: OK"]
    output: Dict[str, Any] = {"orderId": order_id}
    if params.status:
        logs.append(f"Order {order_id} status set to {params.status}")
        output["orderStatus"] = params.status

    logger.info("[Shopify] Order fetched", order_id=order_id)
    return HandlerResult(output=output, logs=logs)
