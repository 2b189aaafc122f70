"""External package-manager build (install → run → target).

``NpmBuild`` drives any npm-compatible CLI (npm, yarn, pnpm) through the same
three steps, then hands the output directory to the resource builder::

    NpmBuild("./web").install().run("build").target("./web/dist") \\
        .change_detection().to_resource_dir().build()

Steps are recorded by the chainable methods and executed in order by
``execute()``; each one is a blocking subprocess in the source directory.
"""

import hashlib
import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Union

from staticbundle.build.codegen import ResourceDir
from staticbundle.build.walker import PathFilter, build_registry
from staticbundle.config import settings
from staticbundle.errors import BuildStepFailed, BuildStepTimeout, ConfigError, ResourceDirNotFound
from staticbundle.registry import ResourceRegistry

logger = logging.getLogger(__name__)

STAMP_FILE = ".staticbundle-stamp"
MANIFEST_FILES = (
    "package.json",
    "package-lock.json",
    "npm-shrinkwrap.json",
    "yarn.lock",
    "pnpm-lock.yaml",
)
_IGNORED_DIRS = {"node_modules", ".git"}


class PackageManager(Protocol):
    """The capability a build tool must offer to feed the resource builder."""

    def install(self) -> "PackageManager": ...

    def run(self, script: str) -> "PackageManager": ...

    def target(self, target_dir: Union[str, Path]) -> "PackageManager": ...

    def to_resource_dir(self) -> ResourceDir: ...


class NpmBuild:
    """npm-driven build of a frontend project."""

    DEFAULT_EXECUTABLE: Optional[str] = None

    def __init__(self, source_dir: Union[str, Path], executable: Optional[str] = None):
        self.source_dir = Path(source_dir)
        self._executable = executable or self.DEFAULT_EXECUTABLE or settings.NPM_EXECUTABLE
        self._install = False
        self._scripts: List[str] = []
        self._target = self.source_dir / "node_modules"
        self._change_detection = False
        self._timeout: Optional[float] = settings.BUILD_TIMEOUT
        self._child_env: Dict[str, str] = {}
        self._filter: Optional[PathFilter] = None

    # ── Configuration ────────────────────────────────────────────────────────

    def executable(self, name: str) -> "NpmBuild":
        self._executable = name
        return self

    def install(self) -> "NpmBuild":
        self._install = True
        return self

    def run(self, script: str) -> "NpmBuild":
        self._scripts.append(script)
        return self

    def target(self, target_dir: Union[str, Path]) -> "NpmBuild":
        self._target = Path(target_dir)
        return self

    def change_detection(self) -> "NpmBuild":
        self._change_detection = True
        return self

    def timeout(self, seconds: Optional[float]) -> "NpmBuild":
        self._timeout = seconds
        return self

    def node_options(self, value: str) -> "NpmBuild":
        """Set ``NODE_OPTIONS`` for the child processes only."""
        self._child_env["NODE_OPTIONS"] = value
        return self

    def with_filter(self, filter: PathFilter) -> "NpmBuild":
        self._filter = filter
        return self

    @property
    def target_dir(self) -> Path:
        return self._target

    @property
    def stamp_path(self) -> Path:
        return self.source_dir / STAMP_FILE

    # ── Change detection ─────────────────────────────────────────────────────

    def _input_files(self) -> List[Path]:
        stamp = self.stamp_path.resolve()
        target = self._target.resolve()
        files = []
        for dirpath, dirnames, filenames in os.walk(self.source_dir):
            current = Path(dirpath)
            dirnames[:] = sorted(
                d for d in dirnames
                if d not in _IGNORED_DIRS and (current / d).resolve() != target
            )
            for name in sorted(filenames):
                path = current / name
                if path.resolve() != stamp:
                    files.append(path)
        return files

    def fingerprint(self) -> str:
        """Hash of the step configuration, manifests and source files.

        ``node_modules`` and the target are excluded.
        """
        h = hashlib.sha256()
        config = [
            self._executable,
            "install" if self._install else "",
            *self._scripts,
            "target=" + str(self._target.resolve()),
            *(f"{k}={v}" for k, v in sorted(self._child_env.items())),
        ]
        for item in config:
            h.update(item.encode("utf-8", "surrogateescape"))
            h.update(b"\0")
        h.update(b"\0")
        for path in self._input_files():
            rel = path.relative_to(self.source_dir).as_posix()
            h.update(rel.encode("utf-8", "surrogateescape"))
            h.update(b"\0")
            h.update(hashlib.sha256(path.read_bytes()).digest())
        return h.hexdigest()

    def is_fresh(self) -> bool:
        """True when the stamp matches the current inputs and output exists."""
        if not self.stamp_path.is_file() or not self._target.is_dir():
            return False
        return self.stamp_path.read_text(encoding="utf-8").strip() == self.fingerprint()

    # ── Execution ────────────────────────────────────────────────────────────

    def _resolve_executable(self) -> str:
        resolved = shutil.which(self._executable)
        if resolved is None:
            raise ConfigError(f"Package manager executable not found: {self._executable}")
        return resolved

    def _run_step(self, step: str, executable: str, args: List[str]) -> None:
        cmd = [executable, *args]
        logger.info(f"Running build step '{step}': {self._executable} {' '.join(args)}")
        env = {**os.environ, **self._child_env}
        try:
            result = subprocess.run(cmd, cwd=str(self.source_dir), env=env, timeout=self._timeout)
        except subprocess.TimeoutExpired:
            raise BuildStepTimeout(step, self._timeout) from None
        if result.returncode != 0:
            raise BuildStepFailed(step, result.returncode)

    def execute(self) -> Path:
        """Run the configured steps and return the directory to embed."""
        if not self.source_dir.is_dir():
            raise ResourceDirNotFound(f"Source directory not found: {self.source_dir}")

        steps = []
        if self._install:
            steps.append(("install", ["install"]))
        steps.extend((f"run {script}", ["run", script]) for script in self._scripts)

        if steps:
            if not (self.source_dir / "package.json").is_file():
                raise ConfigError(f"No package.json in {self.source_dir}")
            executable = self._resolve_executable()

            if self._change_detection and self.is_fresh():
                logger.info(f"Build inputs unchanged in {self.source_dir}, skipping {len(steps)} step(s)")
            else:
                for step, args in steps:
                    self._run_step(step, executable, args)
                if self._change_detection:
                    self.stamp_path.write_text(self.fingerprint() + "\n", encoding="utf-8")

        if not self._target.is_dir():
            raise ResourceDirNotFound(f"Build output directory not found: {self._target}")
        return self._target

    def to_resource_dir(self) -> ResourceDir:
        target = self.execute()
        rd = ResourceDir(target)
        if self._filter is not None:
            rd.with_filter(self._filter)
        return rd

    def build_registry(self) -> ResourceRegistry:
        return build_registry(self.execute(), self._filter)


class YarnBuild(NpmBuild):
    """Same pipeline driven by yarn."""

    DEFAULT_EXECUTABLE = "yarn"


def npm_resource_dir(source_dir: Union[str, Path], executable: Optional[str] = None) -> ResourceDir:
    """Install the dependencies of ``source_dir/package.json`` and embed ``node_modules``."""
    return NpmBuild(source_dir, executable).install().to_resource_dir()
