"""Generated Python module artifact.

The registry is written as an importable module whose function returns a
``ResourceRegistry`` with every file inlined as a bytes literal. Shipping the
module inside the application's own package embeds the assets in the
distribution itself::

    resource_dir("./web/dist").with_generated_filename("myapp/assets.py").build()

    from myapp.assets import generate
    app.mount("/", ResourceFiles(generate(), fallback_to_root=True))

Large trees can be split into several set modules next to the main one
(``with_set_size``); the main module then only lists its sets.
"""

import hashlib
import importlib.util
import keyword
import logging
import os
import re
from pathlib import Path
from typing import Dict, List, Optional, Union

from staticbundle.build.walker import PathFilter, build_registry
from staticbundle.config import settings
from staticbundle.errors import ConfigError, ResourceDirNotFound
from staticbundle.registry import ResourceRegistry
from staticbundle.schemas import Resource

logger = logging.getLogger(__name__)

_HEADER = """\
# Generated by staticbundle. Do not edit.
from staticbundle.registry import ResourceRegistry
from staticbundle.schemas import Resource


def {fn_name}() -> ResourceRegistry:
    return ResourceRegistry([
"""

_FOOTER = """\
    ])
"""

_SETS_HEADER = """\
# Generated by staticbundle. Do not edit.
from staticbundle.build.codegen import load_resource_set
from staticbundle.registry import ResourceRegistry


def {fn_name}() -> ResourceRegistry:
    return ResourceRegistry([
"""

_SET_HEADER = """\
# Generated by staticbundle. Do not edit.
from staticbundle.schemas import Resource

RESOURCES = [
"""

_SET_FOOTER = """\
]
"""


def _check_fn_name(fn_name: str) -> str:
    if not fn_name.isidentifier() or keyword.iskeyword(fn_name):
        raise ConfigError(f"Generated function name is not a valid identifier: {fn_name!r}")
    return fn_name


def _render_resource(resource: Resource, indent: str) -> str:
    return (
        f"{indent}Resource(\n"
        f"{indent}    path={resource.path!r},\n"
        f"{indent}    data={resource.data!r},\n"
        f"{indent}    mime_type={resource.mime_type!r},\n"
        f"{indent}    etag={resource.etag!r},\n"
        f"{indent}),\n"
    )


def render_module(registry: ResourceRegistry, fn_name: str = "generate") -> str:
    """Render the module source; identical registries render identically."""
    lines = [_HEADER.format(fn_name=_check_fn_name(fn_name))]
    lines.extend(_render_resource(r, " " * 8) for r in registry.values())
    lines.append(_FOOTER)
    return "".join(lines)


def _write_atomic(files: Dict[Path, str]) -> None:
    """Write every file to a ``.tmp`` sibling first, then move them all in place."""
    tmps = {path: path.with_name(path.name + ".tmp") for path in files}
    try:
        for path, content in files.items():
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmps[path], "w", encoding="utf-8", newline="\n") as f:
                f.write(content)
        for path, tmp in tmps.items():
            os.replace(tmp, path)
    except Exception:
        for tmp in tmps.values():
            tmp.unlink(missing_ok=True)
        raise


def write_module(
    registry: ResourceRegistry,
    generated_filename: Union[str, Path],
    fn_name: str = "generate",
) -> Path:
    """Write ``registry`` as a Python module and return its path."""
    path = Path(generated_filename)
    _write_atomic({path: render_module(registry, fn_name)})
    logger.info(f"Wrote {len(registry)} resources to {path}")
    return path


def generate_resources(
    project_dir: Union[str, Path],
    filter: Optional[PathFilter],
    generated_filename: Union[str, Path],
    fn_name: str = "generate",
) -> Path:
    """Embed ``project_dir`` into ``generated_filename`` as ``fn_name()``."""
    _check_fn_name(fn_name)
    registry = build_registry(project_dir, filter)
    return write_module(registry, generated_filename, fn_name)


# ── Split into sets ──────────────────────────────────────────────────────────

class SplitByCount:
    """Put at most ``count`` resources in each set module."""

    def __init__(self, count: int):
        if count < 1:
            raise ConfigError(f"Set size must be at least 1, got {count}")
        self.count = count

    def split(self, resources: List[Resource]) -> List[List[Resource]]:
        return [resources[i:i + self.count] for i in range(0, len(resources), self.count)]


def _set_filename(path: Path, index: int) -> Path:
    return path.with_name(f"{path.stem}_set{index}.py")


def write_module_sets(
    registry: ResourceRegistry,
    generated_filename: Union[str, Path],
    fn_name: str = "generate",
    splitter: Optional[SplitByCount] = None,
) -> Path:
    """Write ``registry`` as a main module plus one module per set."""
    path = Path(generated_filename)
    sets = (splitter or SplitByCount(1)).split(list(registry.values()))

    files: Dict[Path, str] = {}
    main = [_SETS_HEADER.format(fn_name=_check_fn_name(fn_name))]
    for index, resources in enumerate(sets):
        set_path = _set_filename(path, index)
        body = [_SET_HEADER]
        body.extend(_render_resource(r, " " * 4) for r in resources)
        body.append(_SET_FOOTER)
        files[set_path] = "".join(body)
        main.append(f"        *load_resource_set(__file__, {set_path.name!r}),\n")
    main.append(_FOOTER)
    files[path] = "".join(main)
    _write_atomic(files)

    # Sets left over from an earlier, larger build
    pattern = re.compile(rf"{re.escape(path.stem)}_set(\d+)\.py")
    for old in path.parent.glob(f"{path.stem}_set*.py"):
        if pattern.fullmatch(old.name) and old not in files:
            old.unlink()

    logger.info(f"Wrote {len(registry)} resources to {path} in {len(sets)} set(s)")
    return path


def generate_resources_sets(
    project_dir: Union[str, Path],
    filter: Optional[PathFilter],
    generated_filename: Union[str, Path],
    fn_name: str = "generate",
    splitter: Optional[SplitByCount] = None,
) -> Path:
    """Like ``generate_resources`` but split across set modules."""
    _check_fn_name(fn_name)
    registry = build_registry(project_dir, filter)
    return write_module_sets(registry, generated_filename, fn_name, splitter)


# ── Loading ──────────────────────────────────────────────────────────────────

def _import_file(path: Path):
    # Unique module name per file so two generated modules never collide
    digest = hashlib.sha1(str(path.resolve()).encode("utf-8")).hexdigest()[:12]
    spec = importlib.util.spec_from_file_location(f"_staticbundle_generated_{digest}", path)
    if spec is None or spec.loader is None:
        raise ConfigError(f"Cannot import {path}: generated modules must have a .py suffix")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def load_resource_set(base_file: Union[str, Path], name: str) -> List[Resource]:
    """Resources of the set module ``name`` next to ``base_file``."""
    path = Path(base_file).parent / name
    if not path.is_file():
        raise ResourceDirNotFound(f"Resource set not found: {path}")
    return list(_import_file(path).RESOURCES)


def load_module(path: Union[str, Path], fn_name: str = "generate") -> ResourceRegistry:
    """Import a generated module by file path and call its registry function."""
    path = Path(path)
    if not path.is_file():
        raise ResourceDirNotFound(f"Generated module not found: {path}")
    module = _import_file(path)
    try:
        fn = getattr(module, fn_name)
    except AttributeError:
        raise ConfigError(f"{path} does not define {fn_name}()") from None
    return fn()


class ResourceDir:
    """Configurable build of one resource directory into a generated module.

    Chainable setters return ``self``::

        resource_dir("./static").with_generated_fn("assets").with_set_size(50).build()
    """

    def __init__(self, resource_dir: Union[str, Path]):
        self.resource_dir = Path(resource_dir)
        self.filter: Optional[PathFilter] = None
        self.generated_filename: Optional[Path] = None
        self.generated_fn: Optional[str] = None
        self.splitter: Optional[SplitByCount] = None

    def with_filter(self, filter: PathFilter) -> "ResourceDir":
        self.filter = filter
        return self

    def with_generated_filename(self, generated_filename: Union[str, Path]) -> "ResourceDir":
        self.generated_filename = Path(generated_filename)
        return self

    def with_generated_fn(self, generated_fn: str) -> "ResourceDir":
        self.generated_fn = generated_fn
        return self

    def with_set_size(self, count: int) -> "ResourceDir":
        self.splitter = SplitByCount(count)
        return self

    def build_registry(self) -> ResourceRegistry:
        return build_registry(self.resource_dir, self.filter)

    def build(self) -> Path:
        generated_filename = self.generated_filename or Path(settings.GENERATED_FILENAME)
        generated_fn = self.generated_fn or settings.GENERATED_FN
        if self.splitter is not None:
            return generate_resources_sets(
                self.resource_dir, self.filter, generated_filename, generated_fn, self.splitter
            )
        return generate_resources(self.resource_dir, self.filter, generated_filename, generated_fn)


def resource_dir(path: Union[str, Path]) -> ResourceDir:
    """Start a build for ``path`` with default options."""
    return ResourceDir(path)
