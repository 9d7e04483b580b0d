from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Type, TypeVar, cast

from fastapi import Request
from pydantic import BaseModel, ValidationError
from starlette.datastructures import FormData, UploadFile

from camper.core.errors import AppError

M = TypeVar("M", bound=BaseModel)

_KEY_RE = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
_PART_RE = re.compile(r"\[([^\[\]]*)\]")


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    model: BaseModel | None
    errors: list[str]

    @property
    def message(self) -> str:
        return ",".join(self.errors)


def _split_key(key: str) -> list[str]:
    m = _KEY_RE.match(key)
    if not m:
        return [key]
    return [m.group(1), *_PART_RE.findall(m.group(2))]


def _assign(root: dict[str, Any], parts: list[str], value: Any) -> None:
    node: Any = root
    for part, nxt in zip(parts, parts[1:]):
        if not isinstance(node, dict):
            return
        child = node.get(part)
        if child is None:
            child = [] if nxt == "" or nxt.isdigit() else {}
            node[part] = child
        node = child

    last = parts[-1]
    if isinstance(node, list):
        node.append(value)
    elif isinstance(node, dict):
        if last in node:
            existing = node[last]
            node[last] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            node[last] = value


def parse_nested_form(form: FormData) -> dict[str, Any]:
    """
    Fold bracket-notation fields into nested data:
    campground[title]=x -> {"campground": {"title": "x"}}, deleteImages[]=a -> {"deleteImages": ["a"]}.
    File parts are skipped; read them with form.getlist(...).
    """
    out: dict[str, Any] = {}
    for key, value in form.multi_items():
        if isinstance(value, UploadFile) or key == "_method":
            continue
        _assign(out, _split_key(key), value)
    return out


def _describe(err: dict[str, Any]) -> str:
    path = ".".join(str(p) for p in err.get("loc", ()))
    etype = err.get("type", "")
    ctx = err.get("ctx") or {}

    if etype == "missing":
        reason = "is required"
    elif etype == "string_too_short":
        reason = "is not allowed to be empty" if ctx.get("min_length") == 1 else f"length must be at least {ctx.get('min_length')} characters long"
    elif etype == "string_too_long":
        reason = f"length must be less than or equal to {ctx.get('max_length')} characters long"
    elif etype == "greater_than_equal":
        reason = f"must be greater than or equal to {ctx.get('ge')}"
    elif etype == "less_than_equal":
        reason = f"must be less than or equal to {ctx.get('le')}"
    elif etype in ("float_parsing", "float_type"):
        reason = "must be a number"
    elif etype == "finite_number":
        reason = "must be a finite number"
    elif etype in ("int_parsing", "int_type", "int_from_float"):
        reason = "must be an integer"
    elif etype == "string_pattern_mismatch":
        reason = "has an invalid format"
    elif etype in ("model_type", "model_attributes_type", "dict_type"):
        reason = "must be of type object"
    else:
        reason = str(err.get("msg", "is invalid")).lower()
    return f'"{path}" {reason}'


def describe_errors(errors: list[dict[str, Any]]) -> str:
    return ",".join(_describe(err) for err in errors)


def validate_payload(model: Type[M], payload: dict[str, Any]) -> ValidationResult:
    """
    Validate payload against model, collecting every violation rather than
    stopping at the first one.
    """
    try:
        obj = model.model_validate(payload)
    except ValidationError as e:
        return ValidationResult(ok=False, model=None, errors=[_describe(err) for err in e.errors()])
    return ValidationResult(ok=True, model=obj, errors=[])


def validate_or_raise(model: Type[M], payload: dict[str, Any]) -> M:
    res = validate_payload(model, payload)
    if not res.ok:
        raise AppError.validation(res.message)
    return cast(M, res.model)


def validated_form(model: Type[M]) -> Callable:
    """Dependency factory: parse the submitted form and validate it as `model`."""

    async def _dependency(request: Request) -> M:
        form = await request.form()
        return validate_or_raise(model, parse_nested_form(form))

    return _dependency


async def uploaded_images(request: Request) -> list[UploadFile]:
    """Files from the multipart `image` field; empty file inputs are dropped."""
    form = await request.form()
    return [f for f in form.getlist("image") if isinstance(f, UploadFile) and f.filename]
