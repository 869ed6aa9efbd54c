"""
Base pydantic model shared by the pricing configuration and quote requests.
Bad values degrade to the field default instead of failing the whole document.
"""

import logging
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, ValidationError, field_validator

from app.services.numbers import coerce_number, to_non_negative_int

logger = logging.getLogger(__name__)

# Float parsed leniently ("12,5", {"value": "3"}); junk triggers the default
Amount = Annotated[float, BeforeValidator(coerce_number)]
# Head / bottle counts: rounded, never negative
Count = Annotated[int, BeforeValidator(to_non_negative_int)]


class TolerantModel(BaseModel):
    """Frozen model that ignores unknown keys and falls back to defaults on bad values."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @field_validator("*", mode="wrap")
    @classmethod
    def _fallback_to_default(cls, value, handler, info):
        try:
            return handler(value)
        except ValidationError:
            field = cls.model_fields[info.field_name]
            if field.is_required():
                raise
            return field.get_default(call_default_factory=True)


def _validate_entry(model: type, entry: Any, where: str):
    try:
        return model.model_validate(entry)
    except ValidationError as e:
        logger.warning(f"Dropping invalid {model.__name__} entry {where}: {e.error_count()} error(s)")
        return None


def valid_list_entries(model: type, raw: Any) -> Any:
    """Validate list entries one by one; malformed entries are dropped, siblings kept."""
    if not isinstance(raw, list):
        return raw
    entries = (_validate_entry(model, entry, f"#{index}") for index, entry in enumerate(raw))
    return [entry for entry in entries if entry is not None]


def valid_mapping_entries(model: type, raw: Any) -> Any:
    """Same as valid_list_entries for a {key: entry} mapping."""
    if not isinstance(raw, dict):
        return raw
    kept = {}
    for key, entry in raw.items():
        validated = _validate_entry(model, entry, repr(key))
        if validated is not None:
            kept[key] = validated
    return kept
