from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# Check and unique constraints are named explicitly on each model.
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base for the ledger tables."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)
