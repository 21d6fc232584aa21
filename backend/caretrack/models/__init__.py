from caretrack.models.user import User
from caretrack.models.carer import Carer, CompetencyRating, CompetencyLevel
from caretrack.models.care_package import CarePackage, Task, PackageTaskAssignment, CarerPackageAssignment
from caretrack.models.rota import RotaEntry, ShiftType
from caretrack.models.audit import AuditLog

__all__ = [
    "User",
    "Carer",
    "CompetencyRating",
    "CompetencyLevel",
    "CarePackage",
    "Task",
    "PackageTaskAssignment",
    "CarerPackageAssignment",
    "RotaEntry",
    "ShiftType",
    "AuditLog",
]
