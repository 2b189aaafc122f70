"""Immutable path → Resource mapping shared by every request."""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Iterable, Iterator, Optional

from staticbundle.paths import check_resource_key
from staticbundle.schemas import Resource


class ResourceRegistry(Mapping):
    """Read-only lookup of embedded resources by normalized path.

    Built once; there is no way to add or remove entries afterwards.
    Iteration is in lexicographic path order.
    """

    __slots__ = ("_files",)

    def __init__(self, resources: Iterable[Resource] = ()):
        files = {}
        for resource in sorted(resources, key=lambda r: r.path):
            check_resource_key(resource.path)
            if resource.path in files:
                raise ValueError(f"Duplicate resource path: {resource.path}")
            files[resource.path] = resource
        self._files = MappingProxyType(files)

    @classmethod
    def empty(cls) -> "ResourceRegistry":
        return cls(())

    def __getitem__(self, path: str) -> Resource:
        return self._files[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def get(self, path: str, default: Optional[Resource] = None) -> Optional[Resource]:
        return self._files.get(path, default)

    def __repr__(self) -> str:
        return f"ResourceRegistry({len(self)} resources)"
