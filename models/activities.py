from sqlalchemy import Column, Index, Integer, Text

from db import FINAL_SCHEMA
from models import Base


class Activity(Base):
    """NACE activity of an entity.

    `nace_version` is the code-set vintage (2003, 2008, 2025); the matching
    label lives in `kbo.code` under one of the NACE categories.
    """

    __tablename__ = "activity"
    __table_args__ = (
        Index("idx_activity_entity", "entity_number"),
        Index("idx_activity_nace", "nace_version", "nace_code"),
        {"schema": FINAL_SCHEMA},
    )

    entity_number = Column(Text, primary_key=True)
    activity_group = Column(Text, primary_key=True)
    nace_version = Column(Integer, primary_key=True, autoincrement=False)
    nace_code = Column(Text, primary_key=True)
    classification = Column(Text, primary_key=True)
