"""Points system models."""

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pokerclub.models.base import Base, TimestampMixin, UUIDMixin


class PointsSystem(Base, UUIDMixin, TimestampMixin):
    """Season-scoped standings points configuration."""

    __tablename__ = "points_systems"

    season_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Flat award for positions without an allocation
    participation_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Bonus per opponent eliminated
    knockout_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    allocations: Mapped[list["PointsAllocation"]] = relationship(
        "PointsAllocation",
        back_populates="points_system",
        cascade="all, delete-orphan",
        order_by="PointsAllocation.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<PointsSystem {self.name}>"


class PointsAllocation(Base, UUIDMixin):
    """Points for a finishing position or inclusive position range."""

    __tablename__ = "points_allocations"

    points_system_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("points_systems.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    # None means "this position only"
    position_end: Mapped[int | None] = mapped_column(Integer, nullable=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    points_system: Mapped[PointsSystem] = relationship(
        "PointsSystem",
        back_populates="allocations",
    )

    @property
    def last_position(self) -> int:
        return self.position_end if self.position_end is not None else self.position

    def __repr__(self) -> str:
        return f"<PointsAllocation {self.position}-{self.last_position}: {self.points}>"
