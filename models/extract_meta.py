from sqlalchemy import Column, Text

from db import FINAL_SCHEMA
from models import Base


class ExtractMeta(Base):
    """Extract metadata (SnapshotDate, ExtractNumber, Version, ...)."""

    __tablename__ = "extract_meta"
    __table_args__ = {"schema": FINAL_SCHEMA}

    variable = Column(Text, primary_key=True)
    value = Column(Text, nullable=False)
