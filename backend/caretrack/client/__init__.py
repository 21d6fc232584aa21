from caretrack.client.violations import (
    ViolationTracker, DisplayedViolation, TransientTag, PersistentTag,
)
from caretrack.client.rota_client import RotaClient, RotaBoard, RotaClientError, parse_slot_id

__all__ = [
    "ViolationTracker", "DisplayedViolation", "TransientTag", "PersistentTag",
    "RotaClient", "RotaBoard", "RotaClientError", "parse_slot_id",
]
