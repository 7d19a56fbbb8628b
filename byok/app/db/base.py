# byok/app/db/base.py
"""
SQLAlchemy declarative base.

All ORM models inherit from Base; table creation goes through
db.session.create_tables.
"""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Usage:
        class StoredCredentialRow(Base):
            __tablename__ = "credentials"
            provider_id = Column(String(32), primary_key=True)
            ...
    """
    pass


__all__ = ["Base"]
