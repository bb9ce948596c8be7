# storefront/data/models/document.py
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String

from storefront.data.database import Base


class DocumentModel(Base):
    __tablename__ = "documents"

    collection = Column(String(64), primary_key=True)
    id = Column(String(64), primary_key=True)

    data = Column(JSON, nullable=False, default=dict)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
