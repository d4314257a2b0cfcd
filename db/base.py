"""
db/base.py

Declarative base for the commerce event-log schema.
"""

from typing import Any

from sqlalchemy import Numeric
from sqlalchemy.orm import DeclarativeBase

# Currency columns: 12 digits, 2 decimal places.
Money = Numeric(12, 2)


class Base(DeclarativeBase):
    """
    Project-wide declarative base.
    All event-log models must inherit from this class.

    List-valued attributes use the portable ``JSON`` type so the schema
    runs unchanged on PostgreSQL and SQLite.
    """

    type_annotation_map: dict[type, Any] = {}
