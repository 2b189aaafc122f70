"""Directory walk → resource table.

Every regular file reachable from the root becomes exactly one Resource,
keyed by its root-relative path with ``/`` separators. Entries are visited in
sorted order so two builds of the same tree produce identical registries.
"""

import logging
import os
from pathlib import Path
from typing import Callable, FrozenSet, List, Optional, Union

from staticbundle.errors import InvalidPathError, ResourceDirNotFound, ResourceReadError
from staticbundle.paths import check_resource_key
from staticbundle.registry import ResourceRegistry
from staticbundle.schemas import Resource

logger = logging.getLogger(__name__)

PathFilter = Callable[[Path], bool]


def _is_within(path: str, root: str) -> bool:
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)


def _url_path(relative: Path) -> str:
    parts = []
    for part in relative.parts:
        if "\\" in part and os.sep != "\\":
            raise InvalidPathError(str(relative), "backslash in file name")
        try:
            part.encode("utf-8")
        except UnicodeEncodeError:
            raise InvalidPathError(os.fsdecode(relative), "file name is not valid UTF-8") from None
        parts.append(part)
    return check_resource_key("/".join(parts))


def _walk(
    directory: Path,
    root: Path,
    real_root: str,
    filter: Optional[PathFilter],
    ancestors: FrozenSet[str],
    out: List[Path],
) -> None:
    try:
        entries = sorted(os.scandir(directory), key=lambda e: e.name)
    except OSError as e:
        raise ResourceReadError(f"Cannot list directory {directory}: {e}") from e

    for entry in entries:
        path = Path(entry.path)
        if filter is not None and not filter(path):
            continue

        if entry.is_symlink():
            real = os.path.realpath(path)
            if not _is_within(real, real_root):
                logger.debug(f"Skipping {path}: symlink points outside {root}")
                continue

        if entry.is_dir():
            real = os.path.realpath(path)
            if real in ancestors:
                logger.debug(f"Skipping {path}: symlink loop")
                continue
            _walk(path, root, real_root, filter, ancestors | {real}, out)
        elif entry.is_file():
            out.append(path)


def collect_files(root: Union[str, Path], filter: Optional[PathFilter] = None) -> List[Path]:
    """Return every regular file under ``root`` (sorted, symlink-safe)."""
    root = Path(root)
    if not root.is_dir():
        raise ResourceDirNotFound(f"Resource directory not found: {root}")
    real_root = os.path.realpath(root)
    files: List[Path] = []
    _walk(root, root, real_root, filter, frozenset([real_root]), files)
    return files


def collect_resources(root: Union[str, Path], filter: Optional[PathFilter] = None) -> List[Resource]:
    """Read every file under ``root`` into a Resource, sorted by path."""
    root = Path(root)
    resources = []
    for path in collect_files(root, filter):
        key = _url_path(path.relative_to(root))
        try:
            data = path.read_bytes()
        except OSError as e:
            raise ResourceReadError(f"Cannot read {key}: {e}") from e
        resources.append(Resource.from_bytes(key, data))
    resources.sort(key=lambda r: r.path)
    return resources


def build_registry(root: Union[str, Path], filter: Optional[PathFilter] = None) -> ResourceRegistry:
    """Build the immutable registry for ``root``."""
    resources = collect_resources(root, filter)
    logger.info(f"Collected {len(resources)} resources from {root}")
    return ResourceRegistry(resources)
