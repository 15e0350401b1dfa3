import logging
from typing import Any

from hookcatch.core.context import AppContext, build_context
from hookcatch.tasks import redis_settings

logger = logging.getLogger(__name__)


async def index_object_task(
    ctx: dict[str, Any], key: str, metadata: dict[str, Any] | None = None
) -> bool:
    """Background task: embed a stored blob and upsert its vector entry."""
    context: AppContext = ctx["app_context"]
    indexed = await context.indexing.run_index(key, metadata)
    if indexed:
        logger.info("Worker indexed %s", key)
    return indexed


async def remove_object_task(ctx: dict[str, Any], key: str) -> bool:
    """Background task: drop the vector entry of a deleted blob."""
    context: AppContext = ctx["app_context"]
    return await context.indexing.run_remove(key)


async def startup(ctx: dict[str, Any]) -> None:
    ctx["app_context"] = build_context()
    logger.info("Indexing worker started")


async def shutdown(ctx: dict[str, Any]) -> None:
    context: AppContext | None = ctx.get("app_context")
    if context is not None:
        await context.aclose()
    logger.info("Indexing worker stopped")


class WorkerSettings:
    functions = [
        index_object_task,
        remove_object_task,
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = redis_settings
