from sqlalchemy import Column, Date, Index, Integer, Text

from db import FINAL_SCHEMA
from models import Base


class Address(Base):
    """Address of a registered entity.

    There is no natural key: an entity can have several addresses and the
    extract carries no address identifier. Reloads replace all addresses of
    every entity present in the staged extract (see `utils.transform`).
    """

    __tablename__ = "address"
    __table_args__ = (
        Index("idx_address_entity", "entity_number"),
        {"schema": FINAL_SCHEMA},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    entity_number = Column(Text, nullable=False)
    type_of_address = Column(Text, nullable=False)
    country_nl = Column(Text, nullable=True)
    country_fr = Column(Text, nullable=True)
    zipcode = Column(Text, nullable=True)
    municipality_nl = Column(Text, nullable=True)
    municipality_fr = Column(Text, nullable=True)
    street_nl = Column(Text, nullable=True)
    street_fr = Column(Text, nullable=True)
    house_number = Column(Text, nullable=True)
    box = Column(Text, nullable=True)
    extra_address_info = Column(Text, nullable=True)
    date_striking_off = Column(Date, nullable=True)
