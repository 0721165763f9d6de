from sqlalchemy import Column, Text

from db import FINAL_SCHEMA
from models import Base


class Code(Base):
    """Multilingual description of a coded value.

    One row per (category, code, language), e.g.
    ('JuridicalForm', '014', 'FR') -> 'Société anonyme'. Activity codes use the
    NACE code-set categories ('Nace2003', 'Nace2008', 'NACEBEL_2025', ...).
    """

    __tablename__ = "code"
    __table_args__ = {"schema": FINAL_SCHEMA}

    category = Column(Text, primary_key=True)
    code = Column(Text, primary_key=True)
    language = Column(Text, primary_key=True)
    description = Column(Text, nullable=False)
