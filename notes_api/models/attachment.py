from sqlalchemy import Column, Integer, ForeignKey, TIMESTAMP, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from notes_api.database import Base
from notes_api.utils.clock import utcnow


class Attachment(Base):
    __tablename__ = "attachments"

    id         = Column(Integer, primary_key=True, index=True)
    note_id    = Column(Uuid, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False, index=True)
    blob_id    = Column(Integer, ForeignKey("blobs.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("note_id", "blob_id", name="uq_attachments_note_blob"),
    )

    note = relationship("Note", back_populates="attachments")
    blob = relationship("Blob", back_populates="attachments")
