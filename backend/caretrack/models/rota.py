import enum
import uuid
from datetime import date, datetime, time, timezone

from sqlalchemy import String, DateTime, Boolean, ForeignKey, Time, Date, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from caretrack.core.database import Base


class ShiftType(str, enum.Enum):
    DAY = "DAY"
    NIGHT = "NIGHT"


class RotaEntry(Base):
    """One scheduled shift of one carer on one care package."""

    __tablename__ = "rota_entries"
    __table_args__ = (Index("ix_rota_entries_carer_date", "carer_id", "date"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    package_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("care_packages.id", ondelete="CASCADE"), nullable=False)
    carer_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("carers.id", ondelete="CASCADE"), nullable=False)

    date: Mapped[date] = mapped_column(Date, nullable=False)
    shift_type: Mapped[str] = mapped_column(String(10), nullable=False)  # DAY | NIGHT
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    is_confirmed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_by_admin_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    carer: Mapped["Carer"] = relationship(back_populates="rota_entries")  # type: ignore[name-defined]
    package: Mapped["CarePackage"] = relationship()  # type: ignore[name-defined]
