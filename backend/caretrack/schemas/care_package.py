from pydantic import BaseModel, field_validator
import uuid
from datetime import datetime


class CarePackageCreate(BaseModel):
    name: str
    postcode: str

    @field_validator("postcode")
    @classmethod
    def outward_code_only(cls, v: str) -> str:
        v = v.strip().upper()
        if not v or len(v) > 4:
            raise ValueError("Postcode must be the outward code only (max. 4 characters)")
        return v


class CarePackageOut(BaseModel):
    id: uuid.UUID
    name: str
    postcode: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class TaskCreate(BaseModel):
    name: str
    description: str | None = None
    target_count: int = 100


class TaskOut(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    target_count: int
    created_at: datetime

    model_config = {"from_attributes": True}
