"""Centralized constants for services and engine defaults.

This module provides a single source of truth for the default service keys,
branch labels, retry defaults and audit log prefixes used across the engine.
"""

from typing import FrozenSet

# =============================================================================
# SERVICES
# =============================================================================

# Service keys with a simulated handler in the default registry
DEFAULT_SERVICE_KEYS: FrozenSet[str] = frozenset([
    'gmail',
    'slack',
    'shopify',
    'sheets',
    'gemini',
    'ai',
    'system',
])

# =============================================================================
# BRANCHING
# =============================================================================

TRUE_BRANCH_LABEL = "true"
FALSE_BRANCH_LABEL = "false"

# =============================================================================
# RETRY DEFAULTS
# =============================================================================

MAX_RETRIES = 3
BASE_RETRY_DELAY = 1.0  # seconds
RETRY_BACKOFF_MULTIPLIER = 2.0
MAX_RETRY_DELAY = 60.0  # seconds

# =============================================================================
# RUN DEFAULTS
# =============================================================================

DEFAULT_TRIGGER_PAYLOAD = {"trigger": "manual_execution"}

# =============================================================================
# AUDIT LOG LINES (Temporal-style event history)
# =============================================================================

EVENT_TASK_SCHEDULED = "Event: ActivityTaskScheduled"
EVENT_TASK_STARTED = "Event: ActivityTaskStarted"
EVENT_TASK_COMPLETED = "Event: ActivityTaskCompleted"
RETRY_WARNING_PREFIX = "Warning: Retry"
ERROR_PREFIX = "Error:"
BRANCH_FALLBACK_PREFIX = "Branch fallback:"
