import enum
import uuid
from sqlalchemy import Column, Integer, String, Text, ForeignKey, TIMESTAMP, Enum, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from notes_api.database import Base
from notes_api.utils.clock import utcnow


class NoteStatus(str, enum.Enum):
    PERSONAL  = "personal"
    PUBLISHED = "published"
    ARCHIVED  = "archived"


class Note(Base):
    __tablename__ = "notes"

    id             = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id        = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_note_id = Column(Uuid, ForeignKey("notes.id", ondelete="CASCADE"), nullable=True, index=True)
    title          = Column(String(255), nullable=False, default="", server_default="")
    body           = Column(Text, nullable=False, default="", server_default="")
    status         = Column(
        Enum(NoteStatus, name="note_status", native_enum=False, length=20,
             values_callable=lambda e: [m.value for m in e]),
        default=NoteStatus.PERSONAL, nullable=False, index=True,
    )
    favorited_at   = Column(TIMESTAMP(timezone=True), nullable=True)
    created_at     = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at     = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(),
                            onupdate=utcnow, nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    user        = relationship("User", back_populates="notes")
    parent      = relationship("Note", remote_side=[id], back_populates="children")
    # Deleting a parent deletes its children; un-nesting a child must not
    children    = relationship("Note", back_populates="parent", cascade="all", passive_deletes=True)
    attachments = relationship("Attachment", back_populates="note",
                               cascade="all, delete-orphan", passive_deletes=True,
                               order_by="Attachment.id")

    def __repr__(self):
        return f"<Note id={self.id} user_id={self.user_id} status={self.status}>"
