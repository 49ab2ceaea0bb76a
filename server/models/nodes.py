"""Pydantic models for node config validation with discriminated unions.

Each handler (and each engine-evaluated node kind) parses its own typed view
out of a node's free-form ``config`` on entry. The discriminator field
``kind`` routes to the correct model: a service key for registry handlers,
``condition``/``script`` for nodes the engine evaluates itself.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator


# =============================================================================
# BASE MODELS
# =============================================================================

class BaseNodeParams(BaseModel):
    """Base class for all node config views."""
    model_config = {"extra": "allow", "populate_by_name": True}


# =============================================================================
# ENGINE-EVALUATED NODES
# =============================================================================

OPERATOR_ALIASES: Dict[str, str] = {
    "gt": ">",
    "lt": "<",
    "gte": ">=",
    "lte": "<=",
    "eq": "==",
    "neq": "!=",
}

ConditionOperator = Literal[">", "<", ">=", "<=", "==", "!=", "contains"]


class ConditionParams(BaseNodeParams):
    """Branch condition: ``<variable> <operator> <threshold>``."""
    kind: Literal["condition"] = "condition"
    variable: str
    operator: ConditionOperator = ">"
    threshold: Any = None

    @field_validator("variable", mode="before")
    @classmethod
    def coerce_variable(cls, v):
        # Templated configs can resolve a variable name to a number
        return v if v is None or isinstance(v, str) else str(v)

    @field_validator("operator", mode="before")
    @classmethod
    def normalise_operator(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return OPERATOR_ALIASES.get(v.lower(), v.lower() if v.isalpha() else v)
        return v


class ScriptParams(BaseNodeParams):
    """User-supplied script body. ``input`` is bound to the run context."""
    kind: Literal["script"] = "script"
    code: str = ""
    timeout: Optional[float] = Field(default=None, gt=0, le=300)


# =============================================================================
# SERVICE HANDLERS
# =============================================================================

class GmailParams(BaseNodeParams):
    """Parameters for the gmail handler."""
    kind: Literal["gmail"] = "gmail"
    to: str = "recipient"
    subject: str = ""
    body: str = ""


class SlackParams(BaseNodeParams):
    """Parameters for the slack handler."""
    kind: Literal["slack"] = "slack"
    channel: str = "#general"
    message: str = ""


class ShopifyParams(BaseNodeParams):
    """Parameters for the shopify handler."""
    kind: Literal["shopify"] = "shopify"
    order_id: Optional[str] = Field(default=None, alias="orderId")
    status: Optional[str] = None


class SheetsParams(BaseNodeParams):
    """Parameters for the sheets handler."""
    kind: Literal["sheets"] = "sheets"
    spreadsheet_id: str = Field(default="default", alias="spreadsheetId")
    row: List[Any] = Field(default_factory=list)


class AIParams(BaseNodeParams):
    """Parameters for AI text generation handlers (gemini, ai)."""
    kind: Literal["gemini", "ai"] = "ai"
    prompt: str = ""
    model: str = "gemini-2.5-flash"


class SystemParams(BaseNodeParams):
    """Parameters for built-in system utilities (timers)."""
    kind: Literal["system"] = "system"
    wait_seconds: float = Field(default=0.0, ge=0.0, le=3600.0, alias="waitSeconds")


# =============================================================================
# DISCRIMINATED UNION
# =============================================================================

KnownNodeParams = Annotated[
    Union[
        ConditionParams,
        ScriptParams,
        GmailParams,
        SlackParams,
        ShopifyParams,
        SheetsParams,
        AIParams,
        SystemParams,
    ],
    Field(discriminator="kind"),
]

# Created once at module level for performance
_known_node_adapter = TypeAdapter(KnownNodeParams)

KNOWN_KINDS = frozenset([
    "condition", "script", "gmail", "slack", "shopify", "sheets", "gemini", "ai", "system",
])


def validate_node_params(kind: str, params: Dict[str, Any]) -> BaseNodeParams:
    """Validate a node config using the model registered for ``kind``.

    For known kinds, validation errors are raised. Unknown kinds fall back to
    BaseNodeParams so third-party handlers keep working.

    Args:
        kind: Service key, or ``condition``/``script``
        params: The resolved config dictionary

    Returns:
        Validated config model

    Raises:
        ValidationError: If validation fails for a known kind
    """
    kind = kind.lower()
    params_with_kind = {**params, "kind": kind}

    if kind in KNOWN_KINDS:
        return _known_node_adapter.validate_python(params_with_kind)
    return BaseNodeParams(**params_with_kind)
