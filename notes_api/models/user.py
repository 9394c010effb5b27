from sqlalchemy import Column, Integer, String, TIMESTAMP
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func
from notes_api.database import Base
from notes_api.utils.clock import utcnow


class User(Base):
    __tablename__ = "users"

    id            = Column(Integer, primary_key=True, index=True)
    email         = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at    = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at    = Column(TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(),
                           onupdate=utcnow, nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    refresh_tokens = relationship("RefreshToken", back_populates="user",
                                  cascade="all, delete-orphan", passive_deletes=True)
    notes          = relationship("Note", back_populates="user",
                                  cascade="all, delete-orphan", passive_deletes=True)

    @validates("email")
    def normalize_email(self, key, value):
        # Uniqueness is case-insensitive: always store the lower-cased form
        return value.strip().lower() if value else value

    def __repr__(self):
        return f"<User id={self.id} email={self.email}>"
