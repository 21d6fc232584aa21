import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from caretrack.core.database import Base


class CompetencyLevel(str, enum.Enum):
    NOT_ASSESSED = "NOT_ASSESSED"
    NOT_COMPETENT = "NOT_COMPETENT"
    ADVANCED_BEGINNER = "ADVANCED_BEGINNER"
    COMPETENT = "COMPETENT"
    PROFICIENT = "PROFICIENT"
    EXPERT = "EXPERT"


# Levels that count as "competent" for staffing checks
COMPETENT_LEVELS = (
    CompetencyLevel.COMPETENT.value,
    CompetencyLevel.PROFICIENT.value,
    CompetencyLevel.EXPERT.value,
)


class Carer(Base):
    __tablename__ = "carers"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    competency_ratings: Mapped[list["CompetencyRating"]] = relationship(
        back_populates="carer", cascade="all, delete-orphan"
    )
    rota_entries: Mapped[list["RotaEntry"]] = relationship(back_populates="carer")  # type: ignore[name-defined]


class CompetencyRating(Base):
    __tablename__ = "competency_ratings"
    __table_args__ = (UniqueConstraint("carer_id", "task_id"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    carer_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("carers.id", ondelete="CASCADE"), nullable=False)
    task_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)

    level: Mapped[str] = mapped_column(String(50), default=CompetencyLevel.NOT_ASSESSED.value)
    source: Mapped[str] = mapped_column(String(50), default="MANUAL")  # ASSESSMENT | MANUAL
    set_by_admin_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    carer: Mapped["Carer"] = relationship(back_populates="competency_ratings")
