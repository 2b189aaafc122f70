"""Embed static assets at build time and serve them over HTTP."""

from staticbundle.build.codegen import (
    ResourceDir,
    SplitByCount,
    generate_resources,
    generate_resources_sets,
    load_module,
    resource_dir,
    write_module,
    write_module_sets,
)
from staticbundle.build.npm import NpmBuild, PackageManager, YarnBuild, npm_resource_dir
from staticbundle.build.walker import build_registry, collect_resources
from staticbundle.database import load_bundle, write_bundle
from staticbundle.errors import (
    BuildStepFailed,
    BuildStepTimeout,
    ConfigError,
    InvalidPathError,
    ResourceDirNotFound,
    ResourceReadError,
    StaticBundleError,
)
from staticbundle.registry import ResourceRegistry
from staticbundle.schemas import Resource
from staticbundle.serving import ResourceFiles

__all__ = [
    "BuildStepFailed",
    "BuildStepTimeout",
    "ConfigError",
    "InvalidPathError",
    "NpmBuild",
    "PackageManager",
    "Resource",
    "ResourceDir",
    "ResourceDirNotFound",
    "ResourceFiles",
    "ResourceReadError",
    "ResourceRegistry",
    "SplitByCount",
    "StaticBundleError",
    "YarnBuild",
    "build_registry",
    "collect_resources",
    "generate_resources",
    "generate_resources_sets",
    "load_bundle",
    "load_module",
    "npm_resource_dir",
    "resource_dir",
    "write_bundle",
    "write_module",
    "write_module_sets",
]
