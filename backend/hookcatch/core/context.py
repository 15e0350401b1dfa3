"""Per-process application context.

Built once at startup (by the FastAPI lifespan or the arq worker) and handed
to the components that need shared resources, instead of module-level
singletons.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

from fastapi import Request
from sqlalchemy.orm import Session

from hookcatch.core.background import BackgroundTaskRunner
from hookcatch.core.config import Settings, settings
from hookcatch.core.database import new_session
from hookcatch.services.embeddings import Embedder, build_embedder
from hookcatch.services.indexing import IndexingPipeline
from hookcatch.services.object_store import ObjectStore, build_object_store


@dataclass
class AppContext:
    settings: Settings
    object_store: ObjectStore
    embedder: Embedder
    tasks: BackgroundTaskRunner = field(default_factory=BackgroundTaskRunner)
    session_factory: Callable[[], Session] = new_session

    @property
    def indexing(self) -> IndexingPipeline:
        return IndexingPipeline(self.object_store, self.embedder, self.session_factory)

    async def aclose(self) -> None:
        """Let in-flight background work finish, then release clients."""
        await self.tasks.drain(self.settings.SHUTDOWN_DRAIN_TIMEOUT_SECONDS)
        await self.embedder.close()


def build_context(config: Settings = settings) -> AppContext:
    return AppContext(
        settings=config,
        object_store=build_object_store(config),
        embedder=build_embedder(config),
    )


def get_context(request: Request) -> AppContext:
    """FastAPI dependency returning the context created at startup."""
    return request.app.state.context  # type: ignore[no-any-return]
