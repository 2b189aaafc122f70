"""Exception hierarchy for building and serving embedded resources.

Build-time errors abort the build; nothing is written until a registry is
complete. Serving-time errors are mapped to HTTP status codes per request.
"""

from typing import Optional


class StaticBundleError(Exception):
    """Base class for every error raised by staticbundle."""


class ResourceDirNotFound(StaticBundleError, FileNotFoundError):
    """The source directory (or a bundle file) does not exist."""


class ResourceReadError(StaticBundleError, OSError):
    """A file under the source directory could not be read."""


class InvalidPathError(StaticBundleError, ValueError):
    """A path cannot be represented as a safe, normalized URL path."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid path {path!r}: {reason}")


class ConfigError(StaticBundleError):
    """Build configuration is unusable (missing executable, no manifest...)."""


class BuildStepFailed(StaticBundleError):
    """An external build step exited with a non-zero status."""

    def __init__(self, step: str, exit_code: int):
        self.step = step
        self.exit_code = exit_code
        super().__init__(f"Build step '{step}' failed with exit code {exit_code}")


class BuildStepTimeout(StaticBundleError):
    """An external build step did not finish within the configured timeout."""

    def __init__(self, step: str, timeout: Optional[float]):
        self.step = step
        self.timeout = timeout
        super().__init__(f"Build step '{step}' timed out after {timeout}s")
