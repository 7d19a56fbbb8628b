# byok/app/models/encryption_key.py
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func

from byok.app.db.base import Base


class EncryptionKeyRow(Base):
    """
    Device-local symmetric keys, one row per fixed storage name.

    The vault key never leaves this table: if the row is lost every
    credential encrypted under it becomes permanently undecryptable.
    """
    __tablename__ = "encryption_keys"

    name = Column(String(64), primary_key=True)

    # Fernet key: urlsafe base64 of 32 random bytes (44 chars)
    value = Column(String(64), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
