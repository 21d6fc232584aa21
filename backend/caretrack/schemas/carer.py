from pydantic import BaseModel, EmailStr
import uuid
from datetime import datetime

from caretrack.models.carer import CompetencyLevel


class CarerOut(BaseModel):
    id: uuid.UUID
    name: str
    email: str | None
    phone: str | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class CarerCreate(BaseModel):
    name: str
    email: EmailStr | None = None
    phone: str | None = None


class CarerUpdate(BaseModel):
    name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    is_active: bool | None = None


class CompetencyRatingSet(BaseModel):
    level: CompetencyLevel
    source: str = "MANUAL"


class CompetencyRatingOut(BaseModel):
    id: uuid.UUID
    carer_id: uuid.UUID
    task_id: uuid.UUID
    level: str
    source: str
    updated_at: datetime

    model_config = {"from_attributes": True}
