from sqlalchemy import Column, Date, ForeignKey, Text
from sqlalchemy.orm import relationship

from db import FINAL_SCHEMA
from models import Base


class Enterprise(Base):
    __tablename__ = "enterprise"
    __table_args__ = {"schema": FINAL_SCHEMA}

    enterprise_number = Column(Text, primary_key=True)
    status = Column(Text, nullable=False)
    juridical_situation = Column(Text, nullable=False)
    type_of_enterprise = Column(Text, nullable=False)

    # Natural persons have no juridical form. Older databases declared this
    # NOT NULL; `utils.migrate_schema` relaxes it.
    juridical_form = Column(Text, nullable=True)
    juridical_form_cac = Column(Text, nullable=True)

    start_date = Column(Date, nullable=False)


class Establishment(Base):
    __tablename__ = "establishment"
    __table_args__ = {"schema": FINAL_SCHEMA}

    establishment_number = Column(Text, primary_key=True)
    start_date = Column(Date, nullable=False)
    enterprise_number = Column(
        Text,
        ForeignKey(f"{FINAL_SCHEMA}.enterprise.enterprise_number"),
        nullable=False,
    )

    enterprise = relationship("Enterprise")


class Branch(Base):
    __tablename__ = "branch"
    __table_args__ = {"schema": FINAL_SCHEMA}

    id = Column(Text, primary_key=True)
    start_date = Column(Date, nullable=False)
    enterprise_number = Column(
        Text,
        ForeignKey(f"{FINAL_SCHEMA}.enterprise.enterprise_number"),
        nullable=False,
    )

    enterprise = relationship("Enterprise")
