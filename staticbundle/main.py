"""FastAPI host application serving an embedded resource registry."""

import logging
from typing import Optional

from fastapi import FastAPI

from staticbundle.build.codegen import load_module
from staticbundle.config import settings
from staticbundle.database import load_bundle
from staticbundle.registry import ResourceRegistry
from staticbundle.serving import ResourceFiles

logger = logging.getLogger(__name__)


def load_configured_registry() -> ResourceRegistry:
    """Registry from the configured bundle or generated module, else empty."""
    if settings.STATIC_BUNDLE:
        return load_bundle(settings.STATIC_BUNDLE)
    if settings.STATIC_MODULE:
        return load_module(settings.STATIC_MODULE, settings.GENERATED_FN)
    logger.warning("No STATIC_BUNDLE or STATIC_MODULE configured, serving an empty registry")
    return ResourceRegistry.empty()


def create_app(
    registry: Optional[ResourceRegistry] = None,
    *,
    mount_path: Optional[str] = None,
    fallback_to_root: Optional[bool] = None,
) -> FastAPI:
    """Build the host app. Explicit routes are registered before the mount."""
    if registry is None:
        registry = load_configured_registry()
    if mount_path is None:
        mount_path = settings.mount_path
    if fallback_to_root is None:
        fallback_to_root = settings.STATIC_FALLBACK_TO_ROOT

    app = FastAPI(
        title="staticbundle",
        description="Serves static assets embedded at build time.",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Detailed health check."""
        return {"status": "healthy", "resources": len(registry)}

    # Registered last so that it never shadows the routes above
    app.mount(
        mount_path.rstrip("/") or "/",
        ResourceFiles(
            registry,
            fallback_to_root=fallback_to_root,
            index_file=settings.STATIC_INDEX_FILE,
        ),
        name="static",
    )
    return app
