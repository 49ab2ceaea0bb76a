"""Parameter Resolver - Template variable resolution.

Resolves {{variable}} template variables in node config using the run's
accumulated context.
"""

import json
import re
from typing import Any, Dict, List, Set

from core.logging import get_logger

logger = get_logger(__name__)

# Compiled regex for template matching
TEMPLATE_PATTERN = re.compile(r'\{\{([^}]+)\}\}')

_MISSING = object()


def resolve_templates(value: Any, context: Dict[str, Any]) -> Any:
    """Resolve {{variable}} templates in ``value`` recursively.

    Strings get every resolvable token replaced with the stringified
    context value; unresolvable tokens are left untouched. Lists and dicts
    are resolved element-wise. Anything else is returned unchanged.
    """
    if isinstance(value, str):
        return _resolve_string(value, context) if '{{' in value else value
    if isinstance(value, dict):
        return {k: resolve_templates(v, context) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [resolve_templates(item, context) for item in value]
    return value


def extract_template_variables(value: Any) -> List[str]:
    """List the identifiers referenced by templates in ``value``, first-seen order."""
    seen: Set[str] = set()
    found: List[str] = []

    def walk(item: Any) -> None:
        if isinstance(item, str):
            for match in TEMPLATE_PATTERN.finditer(item):
                name = match.group(1).strip()
                if name and name not in seen:
                    seen.add(name)
                    found.append(name)
        elif isinstance(item, dict):
            for v in item.values():
                walk(v)
        elif isinstance(item, (list, tuple)):
            for v in item:
                walk(v)

    walk(value)
    return found


def lookup_variable(context: Dict[str, Any], name: str) -> Any:
    """Find ``name`` in context: exact key first, then a dotted path.

    Returns the module-level ``_MISSING`` sentinel when nothing matches, so
    that a present-but-None value can still be substituted.
    """
    if name in context:
        return context[name]
    if '.' not in name:
        return _MISSING

    current: Any = context
    for part in name.split('.'):
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return _MISSING
    return current


def is_missing(value: Any) -> bool:
    return value is _MISSING


def stringify(value: Any) -> str:
    """Text form used for substitution: strings verbatim, everything else as JSON."""
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return str(value)


def _resolve_string(value: str, context: Dict[str, Any]) -> str:
    def replace(match: "re.Match") -> str:
        name = match.group(1).strip()
        resolved = lookup_variable(context, name)
        if resolved is _MISSING:
            logger.debug("Template variable not in context", variable=name)
            return match.group(0)
        return stringify(resolved)

    return TEMPLATE_PATTERN.sub(replace, value)


class ParameterResolver:
    """Resolves template variables in a node's config."""

    def resolve(self, config: Dict[str, Any], context: Dict[str, Any],
                node_id: str = "") -> Dict[str, Any]:
        """Resolve all template variables in ``config`` against ``context``."""
        variables = extract_template_variables(config)
        if variables:
            missing = [v for v in variables if lookup_variable(context, v) is _MISSING]
            logger.info("Resolving templates", node_id=node_id,
                        variables=variables, unresolved=missing)
        return resolve_templates(config, context)
