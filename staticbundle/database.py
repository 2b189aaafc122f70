"""SQLite side-car bundle: SQLAlchemy engine and bundle read/write.

A bundle is a single SQLite file with one row per resource. It is the
alternative to the generated module when the assets should ship next to the
application rather than inside it.
"""

import logging
import os
from pathlib import Path
from typing import Union

from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session

from staticbundle.errors import ResourceDirNotFound
from staticbundle.registry import ResourceRegistry
from staticbundle.schemas import Resource

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def create_bundle_engine(path: Union[str, Path]) -> Engine:
    """Engine for a bundle file."""
    return create_engine(f"sqlite:///{Path(path)}", echo=False)


def write_bundle(registry: ResourceRegistry, path: Union[str, Path]) -> Path:
    """Write ``registry`` to a fresh bundle file, replacing any existing one."""
    from staticbundle.models import BundledResource  # noqa

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    if tmp.exists():
        tmp.unlink()

    try:
        engine = create_bundle_engine(tmp)
        try:
            Base.metadata.create_all(engine)
            with Session(engine) as session:
                session.add_all(
                    BundledResource(
                        path=r.path,
                        data=r.data,
                        mime_type=r.mime_type,
                        etag=r.etag,
                    )
                    for r in registry.values()
                )
                session.commit()
        finally:
            engine.dispose()
        os.replace(tmp, path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise

    logger.info(f"Wrote {len(registry)} resources to bundle {path}")
    return path


def load_bundle(path: Union[str, Path]) -> ResourceRegistry:
    """Load a bundle file into an immutable registry."""
    from staticbundle.models import BundledResource  # noqa

    path = Path(path)
    if not path.is_file():
        raise ResourceDirNotFound(f"Bundle not found: {path}")

    engine = create_bundle_engine(path)
    try:
        with Session(engine) as session:
            rows = session.execute(select(BundledResource).order_by(BundledResource.path)).scalars().all()
            resources = [
                Resource(path=row.path, data=row.data, mime_type=row.mime_type, etag=row.etag)
                for row in rows
            ]
    finally:
        engine.dispose()

    logger.info(f"Loaded {len(resources)} resources from bundle {path}")
    return ResourceRegistry(resources)
