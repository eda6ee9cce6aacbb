"""
Module: hours_kernel.models.resource
Responsibility: ORM persistence for resources (staff members with an hourly cost).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - hourly_cost is Decimal, never float.
    - annual_hours_deducted only ever grows, and only through the
      deduct_future_hours bonus remediation.  It is the sole Resource
      field this subsystem writes.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from hours_kernel.db.base import TrackedBase


class ResourceModel(TrackedBase):
    """
    A resource who performs tasks.

    ``annual_hours`` is only honoured when ``annual_hours_manual`` is set;
    otherwise the configured standard year applies.
    """

    __tablename__ = "resources"

    __table_args__ = (
        Index("idx_resource_email", "email", unique=True),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    hourly_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    hourly_cost_manual: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    annual_hours: Mapped[Decimal | None] = mapped_column(nullable=True)
    annual_hours_manual: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    annual_hours_deducted: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self):
        from hours_kernel.domain.dtos import ResourceInfo

        return ResourceInfo(
            id=self.id,
            name=self.name,
            email=self.email,
            hourly_cost=self.hourly_cost,
            hourly_cost_manual=self.hourly_cost_manual,
            annual_hours=self.annual_hours,
            annual_hours_manual=self.annual_hours_manual,
            annual_hours_deducted=self.annual_hours_deducted or Decimal("0"),
        )

    def __repr__(self) -> str:
        return f"<ResourceModel {self.name}>"
