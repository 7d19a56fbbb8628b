# byok/app/models/credential.py
from sqlalchemy import Column, String, Text, DateTime

from byok.app.db.base import Base


class StoredCredentialRow(Base):
    __tablename__ = "credentials"

    # One active credential per (user, provider); saving again replaces the row
    user_id = Column(String(64), primary_key=True)
    provider_id = Column(String(32), primary_key=True)

    # --- SECRET DATA (Fernet token, never the raw key) ---
    ciphertext = Column(Text, nullable=False)

    # Label shown in the UI (e.g. "primary", "Google Veo 3.1 Fast")
    display_name = Column(String(100), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False)
