"""Pydantic schemas for embedded resources."""

import hashlib
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from staticbundle.mime import mime_type_for

ETAG_HEX_LENGTH = 32


def compute_etag(data: bytes) -> str:
    """Strong, quoted entity tag derived from the content only."""
    return '"%s"' % hashlib.sha256(data).hexdigest()[:ETAG_HEX_LENGTH]


class Resource(BaseModel):
    """A single embedded file plus its serving metadata."""

    model_config = ConfigDict(frozen=True)

    path: str
    data: bytes = Field(repr=False)
    mime_type: str
    etag: str

    @classmethod
    def from_bytes(cls, path: str, data: bytes, mime_type: Optional[str] = None) -> "Resource":
        return cls(
            path=path,
            data=data,
            mime_type=mime_type or mime_type_for(path),
            etag=compute_etag(data),
        )

    @property
    def size(self) -> int:
        return len(self.data)
