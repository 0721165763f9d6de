from sqlalchemy import Column, Text

from db import FINAL_SCHEMA
from models import Base


class Denomination(Base):
    """A name of an enterprise, establishment or branch.

    `entity_number` is not a foreign key: it may point to any of the three.
    """

    __tablename__ = "denomination"
    __table_args__ = {"schema": FINAL_SCHEMA}

    entity_number = Column(Text, primary_key=True)
    language = Column(Text, primary_key=True)
    type_of_denomination = Column(Text, primary_key=True)
    denomination = Column(Text, primary_key=True)
