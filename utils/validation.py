"""Declarative request validation.

A rule set maps field names to a :class:`FieldRule`.  Each rule is a
``required`` flag plus a tuple of constraints; every constraint knows how to
check one value and returns the failure messages it produced.  Validation walks
the rule set (not the payload), so fields that are missing from the payload are
still checked for presence.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from types import SimpleNamespace
from typing import Any, Protocol
from urllib.parse import urlparse

from api.exceptions import ValidationError

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^\+?[1-9]\d{0,15}$")
_CARD_RE = re.compile(r"^\d{13,19}$")
_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_HANDLER_RE = re.compile(r'on\w+="[^"]*"', re.IGNORECASE)
_JS_SCHEME_RE = re.compile(r"javascript:", re.IGNORECASE)
_SPECIAL_CHAR_RE = re.compile(r'[!@#$%^&*(),.?":{}|<>]')

POSTAL_CODE_PATTERNS: dict[str, re.Pattern[str]] = {
    "US": re.compile(r"^\d{5}(-\d{4})?$"),
    "CA": re.compile(r"^[A-Z]\d[A-Z] \d[A-Z]\d$"),
    "UK": re.compile(r"^[A-Z]{1,2}\d[A-Z\d]? \d[A-Z]{2}$"),
    "DE": re.compile(r"^\d{5}$"),
    "FR": re.compile(r"^\d{5}$"),
}


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def is_empty(value: Any) -> bool:
    """Absent, null and empty-string values count as empty."""
    return value is None or value == ""


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def to_number(value: Any) -> float | None:
    """Coerce *value* to a finite float, or return None if it is not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _fmt(number: float) -> str:
    """Render a bound without a trailing ``.0`` for whole numbers."""
    if float(number).is_integer():
        return str(int(number))
    return str(number)


def round_decimal(value: float, places: int = 2) -> float:
    """Round half-up to *places* decimals."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


# ---------------------------------------------------------------------------
# Format checks
# ---------------------------------------------------------------------------


def is_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value))


def is_phone(value: str) -> bool:
    return bool(_PHONE_RE.match(re.sub(r"\s", "", value)))


def is_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def is_postal_code(code: str, country: str = "US") -> bool:
    pattern = POSTAL_CODE_PATTERNS.get(country.upper(), POSTAL_CODE_PATTERNS["US"])
    return bool(pattern.match(code))


def is_credit_card(number: str) -> bool:
    """Basic Luhn check on a 13-19 digit card number."""
    cleaned = re.sub(r"\s", "", number)
    if not _CARD_RE.match(cleaned):
        return False
    total = 0
    for position, char in enumerate(reversed(cleaned)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def check_password(password: str) -> dict[str, Any]:
    """Report which strength requirements *password* meets."""
    requirements = {
        "min_length": len(password) >= 8,
        "has_upper_case": bool(re.search(r"[A-Z]", password)),
        "has_lower_case": bool(re.search(r"[a-z]", password)),
        "has_numbers": bool(re.search(r"\d", password)),
        "has_special_char": bool(_SPECIAL_CHAR_RE.search(password)),
    }
    return {"is_valid": all(requirements.values()), "requirements": requirements}


def sanitize_html(html: str) -> str:
    html = _SCRIPT_RE.sub("", html)
    html = _HANDLER_RE.sub("", html)
    return _JS_SCHEME_RE.sub("", html)


def sanitize_string(value: str) -> str:
    return re.sub(r"[<>]", "", value.strip())


def is_allowed_file_type(filename: str, allowed_types: Sequence[str]) -> bool:
    if "." not in filename:
        return False
    extension = filename.rsplit(".", 1)[1].lower()
    return bool(extension) and extension in allowed_types


def is_allowed_file_size(size: int, max_size_mb: float) -> bool:
    return size <= max_size_mb * 1024 * 1024


helpers = SimpleNamespace(
    email=is_email,
    phone=is_phone,
    url=is_url,
    postal_code=is_postal_code,
    credit_card=is_credit_card,
    password=check_password,
    sanitize_html=sanitize_html,
    sanitize_string=sanitize_string,
    file_type=is_allowed_file_type,
    file_size=is_allowed_file_size,
    round_decimal=round_decimal,
)


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------


class Constraint(Protocol):
    def check(self, value: Any) -> list[str]: ...


@dataclass(frozen=True)
class ArrayBounds:
    min_items: int | None = None
    max_items: int | None = None

    def check(self, value: Any) -> list[str]:
        if not isinstance(value, (list, tuple)):
            return ["must be an array"]
        errors = []
        if self.min_items is not None and len(value) < self.min_items:
            errors.append(f"must contain at least {self.min_items} items")
        if self.max_items is not None and len(value) > self.max_items:
            errors.append(f"must not exceed {self.max_items} items")
        return errors


@dataclass(frozen=True)
class FormatCheck:
    kind: str

    _CHECKS = {
        "email": (is_email, "must be a valid email"),
        "phone": (is_phone, "must be a valid phone number"),
        "url": (is_url, "must be a valid URL"),
    }

    def __post_init__(self) -> None:
        if self.kind not in self._CHECKS:
            msg = f"Unknown format type: {self.kind}"
            raise ValueError(msg)

    def check(self, value: Any) -> list[str]:
        predicate, message = self._CHECKS[self.kind]
        return [] if predicate(_to_text(value)) else [message]


@dataclass(frozen=True)
class LengthRange:
    min_length: int | None = None
    max_length: int | None = None

    def check(self, value: Any) -> list[str]:
        length = len(_to_text(value))
        errors = []
        if self.min_length is not None and length < self.min_length:
            errors.append(f"must be at least {self.min_length} characters")
        if self.max_length is not None and length > self.max_length:
            errors.append(f"must not exceed {self.max_length} characters")
        return errors


@dataclass(frozen=True)
class NumericRange:
    min: float | None = None
    max: float | None = None

    def check(self, value: Any) -> list[str]:
        number = to_number(value)
        if number is None:
            return ["must be a valid number"]
        errors = []
        if self.min is not None and number < self.min:
            errors.append(f"must be at least {_fmt(self.min)}")
        if self.max is not None and number > self.max:
            errors.append(f"must not exceed {_fmt(self.max)}")
        return errors


@dataclass(frozen=True)
class Pattern:
    regex: re.Pattern[str]

    def check(self, value: Any) -> list[str]:
        return [] if self.regex.search(_to_text(value)) else ["format is invalid"]


@dataclass(frozen=True)
class EnumMembership:
    values: tuple[Any, ...]

    def check(self, value: Any) -> list[str]:
        if value in self.values:
            return []
        return [f"must be one of: {', '.join(_to_text(v) for v in self.values)}"]


@dataclass(frozen=True)
class FieldRule:
    """Presence flag plus the constraints applied to a present value."""

    required: bool = False
    constraints: tuple[Constraint, ...] = field(default_factory=tuple)

    def optional(self) -> FieldRule:
        """The same constraints without the presence requirement."""
        return FieldRule(required=False, constraints=self.constraints)


def rule(
    *,
    required: bool = False,
    type: str | None = None,  # noqa: A002
    min_length: int | None = None,
    max_length: int | None = None,
    min: float | None = None,  # noqa: A002
    max: float | None = None,  # noqa: A002
    pattern: str | re.Pattern[str] | None = None,
    enum: Sequence[Any] | None = None,
    is_array: bool = False,
    min_items: int | None = None,
    max_items: int | None = None,
) -> FieldRule:
    """Build a :class:`FieldRule` from keyword options.

    Constraints are evaluated in a fixed order: array bounds, format type,
    length, numeric range, pattern, enum.  Item bounds imply an array check.
    """
    constraints: list[Constraint] = []
    if is_array or min_items is not None or max_items is not None:
        constraints.append(ArrayBounds(min_items, max_items))
    if type is not None:
        constraints.append(FormatCheck(type))
    if min_length is not None or max_length is not None:
        constraints.append(LengthRange(min_length, max_length))
    if min is not None or max is not None:
        constraints.append(NumericRange(min, max))
    if pattern is not None:
        compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
        constraints.append(Pattern(compiled))
    if enum is not None:
        constraints.append(EnumMembership(tuple(enum)))
    return FieldRule(required=required, constraints=tuple(constraints))


ValidationRules = Mapping[str, FieldRule]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def collect_errors(target: Any, rules: ValidationRules) -> dict[str, list[str]]:
    """Return the field -> messages map for *target*; empty when valid."""
    if not isinstance(target, Mapping):
        target = {}
    errors: dict[str, list[str]] = {}
    for name, field_rule in rules.items():
        value = target.get(name)
        if is_empty(value):
            if field_rule.required:
                errors[name] = ["is required"]
            continue
        messages = [msg for c in field_rule.constraints for msg in c.check(value)]
        if messages:
            errors[name] = messages
    return errors


def validate(target: Any, rules: ValidationRules) -> None:
    """Raise :class:`ValidationError` listing every failing field."""
    errors = collect_errors(target, rules)
    if errors:
        raise ValidationError("Validation failed", errors)


def resolve_path(payload: Any, path: str) -> Any:
    """Follow a dotted *path* into nested mappings; None if it leads nowhere."""
    current = payload
    for part in path.split(".") if path else []:
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def validate_at(payload: Any, path: str, rules: ValidationRules) -> None:
    """Validate the sub-object at *path*; a missing sub-object counts as ``{}``."""
    target = resolve_path(payload, path)
    if not isinstance(target, Mapping):
        target = {}
    validate(target, rules)


def partial_rules(rules: ValidationRules, data: Any) -> dict[str, FieldRule]:
    """Rules for the fields present in *data*, with presence checks dropped."""
    if not isinstance(data, Mapping):
        return {}
    return {name: r.optional() for name, r in rules.items() if name in data}
