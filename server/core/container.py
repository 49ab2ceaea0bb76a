"""Dependency injection container for the engine."""

from dependency_injector import containers, providers

from core.config import Settings
from core.logging import configure_logging, get_logger
from services.execution import RetryPolicy, WorkflowExecutor
from services.handlers import ScriptSandbox, create_default_registry
from services.node_executor import NodeExecutor
from services.run_store import InMemoryRunStore
from services.workflow import WorkflowService


class Container(containers.DeclarativeContainer):
    """Engine dependency injection container."""

    # Settings
    settings = providers.Singleton(
        Settings,
    )

    # Service handlers keyed by node.service
    handler_registry = providers.Singleton(
        create_default_registry,
    )

    # SCRIPT node isolation
    script_sandbox = providers.Singleton(
        ScriptSandbox,
        timeout=settings.provided.script_timeout,
        memory_limit_mb=settings.provided.script_memory_limit_mb,
    )

    retry_policy = providers.Factory(
        RetryPolicy,
        max_attempts=settings.provided.retry_max_attempts,
        initial_delay=settings.provided.retry_initial_delay,
        max_delay=settings.provided.retry_max_delay,
        backoff_multiplier=settings.provided.retry_backoff_multiplier,
    )

    node_executor = providers.Factory(
        NodeExecutor,
        registry=handler_registry,
        sandbox=script_sandbox,
        retry_policy=retry_policy,
        schedule_delay=settings.provided.schedule_delay,
    )

    workflow_executor = providers.Singleton(
        WorkflowExecutor,
        node_executor=node_executor,
        strict_start_node=settings.provided.strict_start_node,
    )

    # Persistence seam (process-local by default)
    run_store = providers.Singleton(
        InMemoryRunStore,
    )

    workflow_service = providers.Singleton(
        WorkflowService,
        executor=workflow_executor,
        store=run_store,
    )


# Global container instance
container = Container()


def bootstrap() -> Container:
    """Load settings, configure logging and return the global container."""
    settings = container.settings()
    configure_logging(settings)
    get_logger(__name__).info("Workflow engine configured",
                              log_level=settings.log_level,
                              retry_max_attempts=settings.retry_max_attempts,
                              strict_start_node=settings.strict_start_node)
    return container
