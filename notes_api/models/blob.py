from sqlalchemy import Column, Integer, BigInteger, String, Boolean, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from notes_api.database import Base
from notes_api.utils.clock import utcnow


class Blob(Base):
    """Metadata for a file held by the blob storage; the bytes live in storage under `key`."""
    __tablename__ = "blobs"

    id           = Column(Integer, primary_key=True, index=True)
    key          = Column(String(64), nullable=False, unique=True, index=True)
    filename     = Column(String(255), nullable=False)
    content_type = Column(String(100), nullable=False)
    byte_size    = Column(BigInteger, nullable=False)
    checksum     = Column(String(64), nullable=False)
    uploaded     = Column(Boolean, default=False, nullable=False)
    created_at   = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    attachments = relationship("Attachment", back_populates="blob", cascade="all", passive_deletes=True)

    def __repr__(self):
        return f"<Blob id={self.id} key={self.key} content_type={self.content_type} byte_size={self.byte_size}>"
