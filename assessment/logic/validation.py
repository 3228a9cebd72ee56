"""Input validation shared by the core operations.

Payload shape is declared by the Pydantic models under ``assessment/models``;
this module turns their failures into core ``ValidationError`` instances so
callers only ever handle one error taxonomy. All checks here run before any
store access.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Mapping, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from assessment.logic.errors import InvalidRange, ValidationError
from assessment.models.question import MAX_ORDER_NUMBER

M = TypeVar("M", bound=BaseModel)

PERCENT_MIN = 0.0
PERCENT_MAX = 100.0


def _field_errors(exc: PydanticValidationError) -> list[Dict[str, Any]]:
    out = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        out.append({"path": f"$.{loc}" if loc else "$", "message": err.get("msg", "")})
    return out


def parse_payload(model_cls: Type[M], payload: "M | Mapping[str, Any]") -> M:
    """Return ``payload`` as an instance of ``model_cls`` or raise ValidationError."""
    if isinstance(payload, model_cls):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    if not isinstance(payload, Mapping):
        raise ValidationError("payload must be an object", context={"type": type(payload).__name__})
    try:
        return model_cls.model_validate(dict(payload))
    except PydanticValidationError as exc:
        errors = _field_errors(exc)
        raise ValidationError(
            f"invalid {model_cls.__name__} payload", context={"errors": errors}
        ) from exc


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_percentage(value: Any, *, field: str = "percentage") -> float:
    """Return ``value`` as a float in [0, 100] or raise ValidationError."""
    if not _is_number(value) or not math.isfinite(float(value)):
        raise ValidationError(f"{field} must be a finite number", context={"field": field, "value": value})
    pct = float(value)
    if pct < PERCENT_MIN or pct > PERCENT_MAX:
        raise ValidationError(
            f"{field} must be between {PERCENT_MIN:g} and {PERCENT_MAX:g}",
            context={"field": field, "value": pct},
        )
    return pct


def validate_band_bounds(min_percent: float, max_percent: float) -> None:
    """Raise InvalidRange unless 0 <= min < max <= 100."""
    for field, value in (("min_percent", min_percent), ("max_percent", max_percent)):
        if not _is_number(value) or not math.isfinite(float(value)):
            raise InvalidRange(f"{field} must be a finite number", context={"field": field, "value": value})
        if value < PERCENT_MIN or value > PERCENT_MAX:
            raise InvalidRange(
                f"{field} must be between {PERCENT_MIN:g} and {PERCENT_MAX:g}",
                context={"field": field, "value": value},
            )
    if min_percent >= max_percent:
        raise InvalidRange(
            "Minimum percentage must be less than maximum percentage",
            context={"min_percent": min_percent, "max_percent": max_percent},
        )


def validate_order_number(value: Any) -> int:
    """Return ``value`` as an int in [1, MAX_ORDER_NUMBER] or raise ValidationError."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("order_number must be an integer", context={"value": value})
    if value < 1:
        raise ValidationError("order_number must be at least 1", context={"value": value})
    if value > MAX_ORDER_NUMBER:
        raise ValidationError(
            f"order_number must be at most {MAX_ORDER_NUMBER}",
            context={"value": value, "max": MAX_ORDER_NUMBER},
        )
    return value


__all__ = [
    "PERCENT_MIN",
    "PERCENT_MAX",
    "parse_payload",
    "validate_percentage",
    "validate_band_bounds",
    "validate_order_number",
]
