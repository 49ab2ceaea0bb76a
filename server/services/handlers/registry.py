"""Service handler registry.

Maps a node's ``service`` key to the coroutine that performs its side
effect. New integrations are added by registering a handler, never by
editing the dispatcher. A handler may be limited to some node types, e.g.
gmail only sends for ACTION nodes; a gmail TRIGGER is a no-op.
"""

from dataclasses import dataclass, field
from typing import (
    Any, Awaitable, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Union,
)

from core.logging import get_logger
from services.execution.exceptions import HandlerContractError

logger = get_logger(__name__)


@dataclass
class HandlerResult:
    """Output delta merged into the run context plus audit log lines."""
    output: Dict[str, Any] = field(default_factory=dict)
    logs: List[str] = field(default_factory=list)


RawHandlerResult = Union[HandlerResult, Mapping[str, Any], None]
Handler = Callable[[Dict[str, Any], Dict[str, Any]], Awaitable[RawHandlerResult]]


def coerce_handler_result(raw: RawHandlerResult) -> HandlerResult:
    """Accept a HandlerResult, a ``{"output": ..., "logs": ...}`` mapping or None.

    Raises:
        HandlerContractError: Any other return type (fatal, never retried)
    """
    if raw is None:
        return HandlerResult()
    if isinstance(raw, HandlerResult):
        return raw
    if isinstance(raw, Mapping):
        output = raw.get("output") or {}
        if not isinstance(output, Mapping):
            output = {"result": output}
        return HandlerResult(output=dict(output), logs=[str(line) for line in raw.get("logs") or []])
    raise HandlerContractError(f"Handler returned unsupported result type: {type(raw).__name__}")


def _type_key(node_type: Any) -> str:
    return str(getattr(node_type, "value", node_type)).upper()


class HandlerRegistry:
    """Case-insensitive service key -> handler mapping."""

    def __init__(self):
        self._handlers: Dict[str, Handler] = {}
        self._node_types: Dict[str, Optional[FrozenSet[str]]] = {}

    @staticmethod
    def _key(service: str) -> str:
        return (service or "").strip().lower()

    def register(self, service: str, handler: Handler,
                 node_types: Optional[Iterable[Any]] = None) -> None:
        """Register ``handler`` for ``service``.

        Args:
            service: Service key (case-insensitive)
            handler: ``async (config, context) -> HandlerResult``
            node_types: Node types the handler runs for; None means all
        """
        key = self._key(service)
        if not key:
            raise ValueError("Service key must be a non-empty string")
        if key in self._handlers:
            logger.info("Replacing service handler", service=key)
        self._handlers[key] = handler
        self._node_types[key] = (
            frozenset(_type_key(t) for t in node_types) if node_types is not None else None
        )

    def unregister(self, service: str) -> bool:
        key = self._key(service)
        self._node_types.pop(key, None)
        return self._handlers.pop(key, None) is not None

    def get(self, service: str, node_type: Any = None) -> Optional[Handler]:
        """Handler for ``service``, or None when missing or not meant for ``node_type``."""
        key = self._key(service)
        handler = self._handlers.get(key)
        if handler is None or node_type is None:
            return handler
        allowed = self._node_types.get(key)
        if allowed is not None and _type_key(node_type) not in allowed:
            return None
        return handler

    def has(self, service: str) -> bool:
        return self._key(service) in self._handlers

    def services(self) -> List[str]:
        return sorted(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)
