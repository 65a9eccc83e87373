"""Boundary validation: turn raw request data into a typed model or a list of field errors."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Mapping, TypeVar

from pydantic import BaseModel, ValidationError

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass(frozen=True)
class Valid(Generic[M]):
    value: M


@dataclass(frozen=True)
class Invalid:
    errors: list[FieldError] = field(default_factory=list)


def _field_name(loc: tuple) -> str:
    return ".".join(str(part) for part in loc) or "__root__"


def validate(model: type[M], data: Mapping[str, Any]) -> Valid[M] | Invalid:
    try:
        return Valid(model.model_validate(dict(data)))
    except ValidationError as exc:
        return Invalid([FieldError(_field_name(err.get("loc", ())), err.get("msg", "")) for err in exc.errors()])
