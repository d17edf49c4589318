from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from directory.services.errors import DirectoryValidationError
from directory.services.models import ContactMethod, Island, coerce_enum

# Provider columns a profile edit may touch; also the whitelist for the SQL update.
PROFILE_FIELDS = frozenset(
    {
        "name",
        "phone",
        "whatsapp",
        "island",
        "contact_call_enabled",
        "contact_whatsapp_enabled",
        "contact_sms_enabled",
        "preferred_contact_method",
        "typical_hours",
        "emergency_calls_accepted",
    }
)

_REQUIRED_TEXT_FIELDS = ("name", "phone")
_BOOLEAN_FIELDS = ("contact_call_enabled", "contact_whatsapp_enabled", "contact_sms_enabled", "emergency_calls_accepted")

_CONTACT_COLUMNS: tuple[tuple[ContactMethod, str], ...] = (
    (ContactMethod.CALL, "contact_call_enabled"),
    (ContactMethod.WHATSAPP, "contact_whatsapp_enabled"),
    (ContactMethod.SMS, "contact_sms_enabled"),
)


@dataclass(slots=True, frozen=True)
class ProfileUpdate:
    """Partial profile edit.

    ``fields`` carries only the columns being changed. Areas are always
    replaced and must be non-empty; categories are replaced only when given.
    Area ids on a different island than the provider and unknown category ids
    are dropped by the store rather than rejected.
    """

    area_ids: tuple[int, ...]
    category_ids: tuple[int, ...] | None = None
    fields: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        area_ids = _unique_ids(self.area_ids)
        if not area_ids:
            raise DirectoryValidationError("AREA_REQUIRED", "At least one area is required")

        unknown = sorted(set(self.fields) - PROFILE_FIELDS)
        if unknown:
            raise DirectoryValidationError("INVALID_PROFILE_FIELD", f"Unknown profile fields: {', '.join(unknown)}")

        fields = dict(self.fields)
        for name in _REQUIRED_TEXT_FIELDS:
            if name in fields and not str(fields[name] or "").strip():
                raise DirectoryValidationError("PROFILE_FIELD_REQUIRED", f"{name} cannot be empty")
        for name in _BOOLEAN_FIELDS:
            if name in fields and not isinstance(fields[name], bool):
                raise DirectoryValidationError("INVALID_PROFILE_FIELD", f"{name} must be true or false")
        if "island" in fields:
            fields["island"] = coerce_enum(Island, fields["island"]).value
        if fields.get("preferred_contact_method") is not None:
            fields["preferred_contact_method"] = coerce_enum(ContactMethod, fields["preferred_contact_method"]).value

        object.__setattr__(self, "area_ids", area_ids)
        if self.category_ids is not None:
            object.__setattr__(self, "category_ids", _unique_ids(self.category_ids))
        object.__setattr__(self, "fields", fields)

    def check_against(self, current: dict[str, Any]) -> None:
        """Validate the contact settings the provider would have after this edit."""
        check_contact_methods({**current, **self.fields})


def check_contact_methods(row: dict[str, Any]) -> None:
    enabled = [method for method, column in _CONTACT_COLUMNS if row.get(column, True)]
    if not enabled:
        raise DirectoryValidationError("CONTACT_METHOD_REQUIRED", "At least one contact method must be enabled")
    preferred = row.get("preferred_contact_method")
    if preferred is not None and coerce_enum(ContactMethod, preferred) not in enabled:
        raise DirectoryValidationError("PREFERRED_CONTACT_DISABLED", "Preferred contact method must be enabled")


def _unique_ids(values: Iterable[int]) -> tuple[int, ...]:
    return tuple(dict.fromkeys(int(value) for value in values))
