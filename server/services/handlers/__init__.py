"""Node handlers package.

This package contains the service handler registry and the built-in
handlers, organized by service:
- registry.py: HandlerRegistry, HandlerResult
- code.py: Script sandbox (SCRIPT nodes)
- gmail.py: Email sending
- social.py: Slack messaging
- shopify.py: Order lookup/update
- sheets.py: Spreadsheet row append
- ai.py: AI text generation (gemini, ai)
- utility.py: System timers

The service handlers simulate their integrations; real connectors are
registered the same way under the same service keys.
"""

from models.workflow import NodeType
from .registry import (
    Handler,
    HandlerRegistry,
    HandlerResult,
    coerce_handler_result,
)
from .code import ScriptSandbox
from .gmail import handle_gmail
from .social import handle_slack
from .shopify import handle_shopify
from .sheets import handle_sheets
from .ai import handle_ai
from .utility import handle_system


def create_default_registry() -> HandlerRegistry:
    """Registry pre-populated with the built-in service handlers."""
    registry = HandlerRegistry()
    registry.register('gmail', handle_gmail, node_types=[NodeType.ACTION])
    registry.register('slack', handle_slack)
    registry.register('shopify', handle_shopify)
    registry.register('sheets', handle_sheets)
    registry.register('gemini', handle_ai)
    registry.register('ai', handle_ai)
    registry.register('system', handle_system)
    return registry


__all__ = [
    # Registry
    'Handler',
    'HandlerRegistry',
    'HandlerResult',
    'coerce_handler_result',
    'create_default_registry',
    # Script sandbox
    'ScriptSandbox',
    # Services
    'handle_gmail',
    'handle_slack',
    'handle_shopify',
    'handle_sheets',
    'handle_ai',
    'handle_system',
]
