"""SQLAlchemy ORM models for the bundle file."""

from sqlalchemy import Column, LargeBinary, String

from staticbundle.database import Base


class BundledResource(Base):
    __tablename__ = "bundled_resources"

    path = Column(String(1024), primary_key=True)
    data = Column(LargeBinary, nullable=False)
    mime_type = Column(String(255), nullable=False)
    etag = Column(String(80), nullable=False)
