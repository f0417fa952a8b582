from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Optional

from .error_codes import ErrorCode

RECORD_FIELDS: tuple[str, ...] = (
    "plate",
    "vehicle_type",
    "brand",
    "model",
    "owner_rut",
    "engine_number",
    "year",
    "owner_name",
)


class LookupStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of one lookup attempt for a single plate."""

    status: LookupStatus
    record: Dict[str, str] = field(default_factory=dict)
    message: str = ""
    error_code: Optional[str] = None
    attempts: int = 1

    @classmethod
    def found(cls, record: Dict[str, str]) -> "ExtractionResult":
        return cls(status=LookupStatus.FOUND, record=dict(record))

    @classmethod
    def not_found(cls, reason: str, *, error_code: str = ErrorCode.NO_DATA) -> "ExtractionResult":
        return cls(status=LookupStatus.NOT_FOUND, message=reason, error_code=error_code)

    @classmethod
    def failed(cls, error: str, *, error_code: str = ErrorCode.INTERNAL) -> "ExtractionResult":
        return cls(status=LookupStatus.FAILED, message=error, error_code=error_code)

    @property
    def is_found(self) -> bool:
        return self.status is LookupStatus.FOUND

    def value(self, name: str) -> str:
        return (self.record.get(name) or "").strip()

    def with_attempts(self, attempts: int) -> "ExtractionResult":
        return replace(self, attempts=attempts)


__all__ = ["ExtractionResult", "LookupStatus", "RECORD_FIELDS"]
