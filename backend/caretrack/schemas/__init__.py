from caretrack.schemas.auth import Token, LoginRequest, RefreshRequest, UserOut
from caretrack.schemas.carer import CarerCreate, CarerUpdate, CarerOut, CompetencyRatingSet, CompetencyRatingOut
from caretrack.schemas.care_package import CarePackageCreate, CarePackageOut, TaskCreate, TaskOut
from caretrack.schemas.rota import (
    RotaEntryIn, RotaEntryCreate, RotaEntryUpdate, RotaEntryOut, RuleViolationOut, ValidationResultOut,
    BulkRotaCreate, BatchDeleteRequest, WeeklyRotaOut,
)

__all__ = [
    "Token", "LoginRequest", "RefreshRequest", "UserOut",
    "CarerCreate", "CarerUpdate", "CarerOut", "CompetencyRatingSet", "CompetencyRatingOut",
    "CarePackageCreate", "CarePackageOut", "TaskCreate", "TaskOut",
    "RotaEntryIn", "RotaEntryCreate", "RotaEntryUpdate", "RotaEntryOut", "RuleViolationOut", "ValidationResultOut",
    "BulkRotaCreate", "BatchDeleteRequest", "WeeklyRotaOut",
]
