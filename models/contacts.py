from sqlalchemy import Column, Text

from db import FINAL_SCHEMA
from models import Base


class Contact(Base):
    __tablename__ = "contact"
    __table_args__ = {"schema": FINAL_SCHEMA}

    entity_number = Column(Text, primary_key=True)
    entity_contact = Column(Text, primary_key=True)
    # e.g. TEL, EMAIL, WEB
    contact_type = Column(Text, primary_key=True)
    value = Column(Text, primary_key=True)
