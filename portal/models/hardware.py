"""SQLAlchemy model for the shared hardware pools."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, Integer, Text

from ..db.session import Base


class HardwareSet(Base):
    """A named pool with a fixed capacity and a mutable checked-out count.

    ``capacity`` is set when the row is seeded and never changes afterwards;
    only ``checked_out`` moves, and always inside ``[0, capacity]``.
    """

    __tablename__ = "hardware_sets"
    __table_args__ = (
        CheckConstraint("capacity >= 0", name="ck_hardware_sets_capacity_non_negative"),
        CheckConstraint(
            "checked_out >= 0 AND checked_out <= capacity",
            name="ck_hardware_sets_checked_out_bounds",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, unique=True, index=True)
    capacity = Column(Integer, nullable=False)
    checked_out = Column(Integer, nullable=False, default=0)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    @property
    def available(self) -> int:
        return self.capacity - self.checked_out


__all__ = ["HardwareSet"]
