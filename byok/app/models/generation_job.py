# byok/app/models/generation_job.py
from sqlalchemy import Column, Integer, String, Text, DateTime, JSON

from byok.app.db.base import Base


class GenerationJobRow(Base):
    __tablename__ = "generation_jobs"

    id = Column(String(32), primary_key=True)
    user_id = Column(String(64), nullable=True, index=True)

    provider_id = Column(String(32), nullable=False, index=True)
    prompt = Column(Text, nullable=False)

    # {"duration": 4, "aspect_ratio": "16:9"}
    settings = Column(JSON, nullable=False)

    # pending | processing | completed | failed
    status = Column(String(16), nullable=False, index=True)

    # Opaque adapter handle (e.g. a Vertex AI operation name).
    # Persisted so polling can resume after a restart.
    provider_handle = Column(Text, nullable=True)
    poll_attempts = Column(Integer, default=0, nullable=False)

    # Set iff completed / iff failed
    result_reference = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
