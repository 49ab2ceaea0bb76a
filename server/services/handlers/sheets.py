"""Google Sheets handler (simulated row append)."""

from typing import Dict, Any

from core.logging import get_logger
from models.nodes import validate_node_params
from .registry import HandlerResult

logger = get_logger(__name__)


async def handle_sheets(parameters: Dict[str, Any], context: Dict[str, Any]) -> HandlerResult:
    """Append a row to a spreadsheet."""
    params = validate_node_params("sheets", parameters)

    logger.info("[Sheets] Appending row", spreadsheet_id=params.spreadsheet_id,
                columns=len(params.row))
    return HandlerResult(
        output={"sheetsRowAppended": True, "spreadsheetId": params.spreadsheet_id},
        logs=[
            f"Opening spreadsheet {params.spreadsheet_id}...",
            f"Appended row with {len(params.row)} values",
        ],
    )
