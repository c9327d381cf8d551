from __future__ import annotations
from typing import Protocol, Set
from catalog_sync.core.models import RemoteRecord, ValidationResult

IDENTITY_FIELDS = frozenset({"external_id", "title"})


class Validator(Protocol):
    """Protocol for fetched record validators."""

    def validate(self, record: RemoteRecord, required: Set[str]) -> ValidationResult: ...


class RequiredFieldsValidator:
    """Validator that checks for required fields."""

    def validate(self, record: RemoteRecord, required: Set[str] = IDENTITY_FIELDS) -> ValidationResult:
        """Validate that required fields are present and non-empty."""
        for f in sorted(required):
            v = getattr(record, f, None)
            if v is None or str(v).strip() == "":
                return ValidationResult(False, f"missing_{f}")
        return ValidationResult(True, "")
