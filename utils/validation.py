"""
Declarative payload validation.

A schema maps field name -> Field(kind, constraints). validate() coerces every
declared field of a raw mapping (form data or JSON) and either returns the clean
values or raises SchemaError with one Violation per offending field. Fields not
declared in the schema are dropped.
"""
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class Field:
    kind: str  # key of COERCERS
    required: bool = True
    min: Optional[float] = None
    max: Optional[float] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    default: Any = None


@dataclass(frozen=True)
class Violation:
    field: str
    message: str

    def __str__(self):
        return f"{self.field}: {self.message}"


class SchemaError(Exception):
    def __init__(self, violations: List[Violation]):
        super().__init__("; ".join(str(v) for v in violations))
        self.violations = violations


def _to_string(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError("must be text")
    return value.strip()


def _to_secret(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError("must be text")
    return value


def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError("must be a number")
    if not math.isfinite(number):
        raise ValueError("must be a finite number")
    return number


def _to_integer(value: Any) -> int:
    number = _to_number(value)
    if not number.is_integer():
        raise ValueError("must be a whole number")
    return int(number)


def _to_email(value: Any) -> str:
    text = _to_string(value)
    if text and not EMAIL_RE.match(text):
        raise ValueError("must be a valid email")
    return text


COERCERS: Dict[str, Callable[[Any], Any]] = {
    "string": _to_string,
    "number": _to_number,
    "integer": _to_integer,
    "email": _to_email,
    "secret": _to_secret,
}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _check(name: str, rule: Field, value: Any) -> Optional[str]:
    if rule.min is not None and value < rule.min:
        return f"must be greater than or equal to {rule.min:g}"
    if rule.max is not None and value > rule.max:
        return f"must be less than or equal to {rule.max:g}"
    if isinstance(value, str):
        if rule.min_length is not None and len(value) < rule.min_length:
            return f"must be at least {rule.min_length} characters"
        if rule.max_length is not None and len(value) > rule.max_length:
            return f"must be at most {rule.max_length} characters"
    return None


def validate(schema: Mapping[str, Field], payload: Mapping[str, Any]) -> Dict[str, Any]:
    clean: Dict[str, Any] = {}
    violations: List[Violation] = []

    for name, rule in schema.items():
        raw = payload.get(name)
        if _is_blank(raw):
            if rule.required:
                violations.append(Violation(name, "is required"))
            else:
                clean[name] = rule.default
            continue
        try:
            value = COERCERS[rule.kind](raw)
        except ValueError as e:
            violations.append(Violation(name, str(e)))
            continue
        problem = _check(name, rule, value)
        if problem:
            violations.append(Violation(name, problem))
        else:
            clean[name] = value

    if violations:
        raise SchemaError(violations)
    return clean
