"""
Service catalog model.

WHY: The office bills recurring work (ITR filing, GST returns, bookkeeping)
at standard rates. Catalog entries let staff pick a line item instead of
typing the name and price on every invoice.
"""

import enum
from decimal import Decimal

from sqlalchemy import Column, String, Text, Numeric, Boolean, Enum as SQLEnum

from caportal.models.base import Base, TimestampMixin, PrimaryKeyMixin


class ServiceCategory(str, enum.Enum):
    """Practice area a service belongs to."""

    ITR = "ITR"
    GST = "GST"
    ACCOUNTING = "ACCOUNTING"
    OTHER = "OTHER"


class ServiceOffering(Base, PrimaryKeyMixin, TimestampMixin):
    """A billable service with its standard price."""

    __tablename__ = "service_offerings"

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    base_price = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    category = Column(
        SQLEnum(ServiceCategory, name="servicecategory"),
        nullable=False,
        default=ServiceCategory.OTHER,
    )
    # WHY: Retired services stay referenced by old invoice items
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<ServiceOffering(id={self.id}, name={self.name}, price={self.base_price})>"
