"""
Column and value helpers shared by the models.
"""
from decimal import Decimal
from typing import Optional

from sqlalchemy import Column, JSON
from sqlalchemy.dialects.postgresql import JSONB


def json_column(nullable: bool = True) -> Column:
    """JSON column stored as JSONB on PostgreSQL."""
    return Column(JSON().with_variant(JSONB(), "postgresql"), nullable=nullable)


CENT = Decimal("0.01")


def money(value) -> Optional[Decimal]:
    """Normalise an amount to a two-place Decimal."""
    if value is None:
        return None
    return Decimal(str(value)).quantize(CENT)
