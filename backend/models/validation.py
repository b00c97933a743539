"""
Payload Validation Helpers

Converts pydantic validation failures into the core's ``MalformedInput``
so callers see one error type naming the offending wire field.
"""

from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ml.optimization.exceptions import MalformedInput
from models.household import HouseholdConfig
from models.tariff import TariffIn, tariff_adapter

M = TypeVar("M", bound=BaseModel)


def malformed_from_validation(exc: ValidationError, root: str = "") -> MalformedInput:
    """Build a MalformedInput naming the first failing field (dotted location)."""
    error = exc.errors()[0]
    parts = [root] if root else []
    parts.extend(str(p) for p in error["loc"])
    field = ".".join(parts) or "payload"
    return MalformedInput(field, f"Invalid '{field}': {error['msg']}")


def parse_payload(model: Type[M], data: Any, root: str = "") -> M:
    """Validate ``data`` against ``model``, raising MalformedInput on failure."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise malformed_from_validation(e, root)


def parse_tariff(data: Any) -> TariffIn:
    """Validate a TOU or BLOCK tariff payload."""
    try:
        return tariff_adapter.validate_python(data)
    except ValidationError as e:
        raise malformed_from_validation(e, "tariff")


def parse_household(data: Any) -> HouseholdConfig:
    """Validate a complete household configuration."""
    return parse_payload(HouseholdConfig, data)
