"""
Value constraints for number and variable nodes.

A constraint restricts the values a node may take: a range, a number domain,
a sign, primality, parity, divisibility, or a comparison against a constant.
Constraints are attached per node id in a :class:`ConstraintSet`; a new
constraint that cannot hold together with the existing ones is rejected.
"""

import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from common.errors import ConstraintConflict, ConstraintViolation, SchemaError


class ConstraintType(str, Enum):
    NOT_EQUAL = "not_equal"
    RANGE = "range"
    DOMAIN = "domain"
    SIGN = "sign"
    PRIME = "prime"
    PERFECT_SQUARE = "perfect_square"
    EVEN_ODD = "even_odd"
    FIBONACCI = "fibonacci"
    DIVISIBLE = "divisible"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    EQUAL_TO = "equal_to"


class Domain(str, Enum):
    REAL = "ℝ"
    INTEGER = "ℤ"
    NATURAL = "ℕ"
    RATIONAL = "ℚ"
    POSITIVE_REAL = "ℝ⁺"
    NEGATIVE_REAL = "ℝ⁻"


class Sign(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NON_ZERO = "non_zero"


class Parity(str, Enum):
    EVEN = "even"
    ODD = "odd"


T = ConstraintType

_COMPARISONS = (T.NOT_EQUAL, T.GREATER_THAN, T.LESS_THAN, T.EQUAL_TO)


def _is_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return isinstance(value, int) or math.isfinite(value)


def _new_id() -> str:
    return uuid.uuid4().hex[:8]


@dataclass(frozen=True)
class Constraint:
    """One rule on a node's value; only the fields its type needs are set."""

    type: ConstraintType
    value: Optional[float] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    min_inclusive: bool = True
    max_inclusive: bool = True
    domain: Optional[Domain] = None
    sign: Optional[Sign] = None
    parity: Optional[Parity] = None
    divisor: Optional[float] = None
    id: str = field(default_factory=_new_id)
    active: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.type, ConstraintType):
            raise SchemaError(f"Unknown constraint type: {self.type!r}")
        if self.type is T.RANGE:
            if not (_is_number(self.minimum) and _is_number(self.maximum)):
                raise SchemaError("A range needs numeric minimum and maximum")
            if self.minimum > self.maximum:
                raise SchemaError("Range minimum is above its maximum")
        elif self.type in _COMPARISONS and not _is_number(self.value):
            raise SchemaError(f"'{self.type.value}' needs a numeric value")
        elif self.type is T.DOMAIN and not isinstance(self.domain, Domain):
            raise SchemaError("A domain constraint needs a known domain")
        elif self.type is T.SIGN and not isinstance(self.sign, Sign):
            raise SchemaError("A sign constraint needs positive, negative or non_zero")
        elif self.type is T.EVEN_ODD and not isinstance(self.parity, Parity):
            raise SchemaError("A parity constraint needs even or odd")
        elif self.type is T.DIVISIBLE and (not _is_number(self.divisor) or self.divisor == 0):
            raise SchemaError("A divisibility constraint needs a non-zero divisor")

    @property
    def description(self) -> str:
        return describe(self)

    def to_dict(self) -> dict:
        data = {"id": self.id, "type": self.type.value, "active": self.active}
        if self.type is T.RANGE:
            data.update(min=self.minimum, max=self.maximum,
                        min_inclusive=self.min_inclusive, max_inclusive=self.max_inclusive)
        elif self.type in _COMPARISONS:
            data["value"] = self.value
        elif self.type is T.DOMAIN:
            data["domain"] = self.domain.value
        elif self.type is T.SIGN:
            data["sign"] = self.sign.value
        elif self.type is T.EVEN_ODD:
            data["parity"] = self.parity.value
        elif self.type is T.DIVISIBLE:
            data["divisor"] = self.divisor
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Constraint":
        """Rebuild a constraint from :meth:`to_dict` output; raises ``SchemaError``."""
        if not isinstance(data, dict):
            raise SchemaError("Constraint record must be a mapping")
        try:
            ctype = ConstraintType(data.get("type"))
            domain = Domain(data["domain"]) if data.get("domain") is not None else None
            sign = Sign(data["sign"]) if data.get("sign") is not None else None
            parity = Parity(data["parity"]) if data.get("parity") is not None else None
        except ValueError as exc:
            raise SchemaError(f"Invalid constraint record: {exc}") from None
        return cls(
            type=ctype,
            value=data.get("value"),
            minimum=data.get("min"),
            maximum=data.get("max"),
            min_inclusive=bool(data.get("min_inclusive", True)),
            max_inclusive=bool(data.get("max_inclusive", True)),
            domain=domain,
            sign=sign,
            parity=parity,
            divisor=data.get("divisor"),
            id=data.get("id") or _new_id(),
            active=bool(data.get("active", True)),
        )


# ── Builders ────────────────────────────────────────────────────────────

def not_equal(value) -> Constraint:
    return Constraint(T.NOT_EQUAL, value=value)


def value_range(minimum, maximum, min_inclusive: bool = True,
                max_inclusive: bool = True) -> Constraint:
    return Constraint(T.RANGE, minimum=minimum, maximum=maximum,
                      min_inclusive=min_inclusive, max_inclusive=max_inclusive)


def in_domain(domain) -> Constraint:
    try:
        return Constraint(T.DOMAIN, domain=Domain(domain))
    except ValueError:
        raise SchemaError(f"Unknown domain: {domain!r}") from None


def positive() -> Constraint:
    return Constraint(T.SIGN, sign=Sign.POSITIVE)


def negative() -> Constraint:
    return Constraint(T.SIGN, sign=Sign.NEGATIVE)


def non_zero() -> Constraint:
    return Constraint(T.SIGN, sign=Sign.NON_ZERO)


def prime() -> Constraint:
    return Constraint(T.PRIME)


def perfect_square() -> Constraint:
    return Constraint(T.PERFECT_SQUARE)


def even() -> Constraint:
    return Constraint(T.EVEN_ODD, parity=Parity.EVEN)


def odd() -> Constraint:
    return Constraint(T.EVEN_ODD, parity=Parity.ODD)


def fibonacci() -> Constraint:
    return Constraint(T.FIBONACCI)


def divisible_by(divisor) -> Constraint:
    return Constraint(T.DIVISIBLE, divisor=divisor)


def greater_than(value) -> Constraint:
    return Constraint(T.GREATER_THAN, value=value)


def less_than(value) -> Constraint:
    return Constraint(T.LESS_THAN, value=value)


def equal_to(value) -> Constraint:
    return Constraint(T.EQUAL_TO, value=value)


# ── Number properties ───────────────────────────────────────────────────

def _as_int(value) -> Optional[int]:
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def is_prime(value) -> bool:
    n = _as_int(value)
    if n is None or n <= 1:
        return False
    if n <= 3:
        return True
    if n % 2 == 0 or n % 3 == 0:
        return False
    i = 5
    while i * i <= n:
        if n % i == 0 or n % (i + 2) == 0:
            return False
        i += 6
    return True


def is_perfect_square(value) -> bool:
    n = _as_int(value)
    if n is None or n < 0:
        return False
    root = math.isqrt(n)
    return root * root == n


def is_fibonacci(value) -> bool:
    n = _as_int(value)
    if n is None or n < 0:
        return False
    # n is Fibonacci iff 5n²+4 or 5n²-4 is a perfect square
    return is_perfect_square(5 * n * n + 4) or is_perfect_square(5 * n * n - 4)


def _in_domain(value: float, domain: Domain) -> bool:
    if domain is Domain.INTEGER:
        return _as_int(value) is not None
    if domain is Domain.NATURAL:
        return _as_int(value) is not None and value > 0
    if domain is Domain.POSITIVE_REAL:
        return value > 0
    if domain is Domain.NEGATIVE_REAL:
        return value < 0
    return math.isfinite(value)


def satisfies(constraint: Constraint, value) -> bool:
    """Whether *value* meets *constraint*; inactive constraints always pass."""
    if not constraint.active:
        return True
    if not _is_number(value):
        return False
    t = constraint.type
    if t is T.NOT_EQUAL:
        return value != constraint.value
    if t is T.EQUAL_TO:
        return value == constraint.value
    if t is T.GREATER_THAN:
        return value > constraint.value
    if t is T.LESS_THAN:
        return value < constraint.value
    if t is T.RANGE:
        low_ok = value >= constraint.minimum if constraint.min_inclusive else value > constraint.minimum
        high_ok = value <= constraint.maximum if constraint.max_inclusive else value < constraint.maximum
        return low_ok and high_ok
    if t is T.DOMAIN:
        return _in_domain(value, constraint.domain)
    if t is T.SIGN:
        if constraint.sign is Sign.POSITIVE:
            return value > 0
        if constraint.sign is Sign.NEGATIVE:
            return value < 0
        return value != 0
    if t is T.PRIME:
        return is_prime(value)
    if t is T.PERFECT_SQUARE:
        return is_perfect_square(value)
    if t is T.FIBONACCI:
        return is_fibonacci(value)
    if t is T.EVEN_ODD:
        n = _as_int(value)
        if n is None:
            return False
        return (n % 2 == 0) == (constraint.parity is Parity.EVEN)
    # DIVISIBLE
    return math.isclose(math.remainder(value, constraint.divisor), 0.0, abs_tol=1e-9)


def _num(value) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def describe(constraint: Constraint) -> str:
    t = constraint.type
    if t is T.NOT_EQUAL:
        return f"≠ {_num(constraint.value)}"
    if t is T.RANGE:
        left = "[" if constraint.min_inclusive else "("
        right = "]" if constraint.max_inclusive else ")"
        return f"∈ {left}{_num(constraint.minimum)}, {_num(constraint.maximum)}{right}"
    if t is T.DOMAIN:
        return f"∈ {constraint.domain.value}"
    if t is T.SIGN:
        return {Sign.POSITIVE: "> 0", Sign.NEGATIVE: "< 0"}.get(constraint.sign, "≠ 0")
    if t is T.PRIME:
        return "must be prime"
    if t is T.PERFECT_SQUARE:
        return "must be perfect square"
    if t is T.EVEN_ODD:
        return f"must be {constraint.parity.value}"
    if t is T.FIBONACCI:
        return "must be Fibonacci number"
    if t is T.DIVISIBLE:
        return f"divisible by {_num(constraint.divisor)}"
    if t is T.GREATER_THAN:
        return f"> {_num(constraint.value)}"
    if t is T.LESS_THAN:
        return f"< {_num(constraint.value)}"
    return f"= {_num(constraint.value)}"


# ── Conflicts ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Conflict:
    first_id: str
    second_id: str
    kind: str


def _one_way_conflict(a: Constraint, b: Constraint) -> Optional[str]:
    if a.type is T.EQUAL_TO and b.type is T.NOT_EQUAL and a.value == b.value:
        return "equal_not_equal_conflict"
    if a.type is T.EQUAL_TO and b.type is T.EQUAL_TO and a.value != b.value:
        return "different_equal_values"
    if a.type is T.EQUAL_TO and b.type is not T.NOT_EQUAL and not satisfies(b, a.value):
        return "equal_value_excluded"
    if a.type is T.RANGE and b.type is T.RANGE:
        if a.maximum < b.minimum or b.maximum < a.minimum:
            return "non_overlapping_ranges"
    if a.type is T.GREATER_THAN and b.type is T.LESS_THAN and a.value >= b.value:
        return "empty_interval"
    if (a.type is T.SIGN and b.type is T.SIGN
            and {a.sign, b.sign} == {Sign.POSITIVE, Sign.NEGATIVE}):
        return "opposite_signs"
    if a.type is T.EVEN_ODD and b.type is T.EVEN_ODD and a.parity is not b.parity:
        return "opposite_parity"
    return None


def find_conflict(a: Constraint, b: Constraint) -> Optional[str]:
    """Name the reason *a* and *b* can never hold together, or ``None``."""
    if not (a.active and b.active):
        return None
    return _one_way_conflict(a, b) or _one_way_conflict(b, a)


@dataclass(frozen=True)
class Violation:
    constraint: Constraint
    value: float

    @property
    def description(self) -> str:
        return self.constraint.description


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    violations: tuple = ()


# ── Per-node store ──────────────────────────────────────────────────────

class ConstraintSet:
    """Constraints keyed by target (a node id)."""

    def __init__(self) -> None:
        self._by_target: dict[str, list[Constraint]] = {}

    def __len__(self) -> int:
        return sum(len(items) for items in self._by_target.values())

    def targets(self) -> list[str]:
        return list(self._by_target)

    def constraints_for(self, target: str) -> list[Constraint]:
        return list(self._by_target.get(target, []))

    def add(self, target: str, constraint: Constraint) -> Constraint:
        """Attach *constraint*; raises ``ConstraintConflict`` and leaves the set alone."""
        if not isinstance(constraint, Constraint):
            raise SchemaError("Expected a Constraint")
        existing = self._by_target.get(target, [])
        if any(c.id == constraint.id for c in existing):
            raise SchemaError(f"Constraint id '{constraint.id}' is already attached")
        conflicts = []
        for other in existing:
            kind = find_conflict(other, constraint)
            if kind:
                conflicts.append(Conflict(other.id, constraint.id, kind))
        if conflicts:
            raise ConstraintConflict(target, tuple(conflicts))
        self._by_target.setdefault(target, []).append(constraint)
        return constraint

    def remove(self, target: str, constraint_id: str) -> bool:
        items = self._by_target.get(target, [])
        for i, c in enumerate(items):
            if c.id == constraint_id:
                del items[i]
                if not items:
                    del self._by_target[target]
                return True
        return False

    def clear(self, target: Optional[str] = None) -> None:
        if target is None:
            self._by_target.clear()
        else:
            self._by_target.pop(target, None)

    def validate_value(self, target: str, value) -> ValidationResult:
        violations = tuple(
            Violation(c, value) for c in self._by_target.get(target, [])
            if not satisfies(c, value)
        )
        return ValidationResult(not violations, violations)

    def check(self, target: str, value) -> None:
        """Raise ``ConstraintViolation`` unless *value* meets every constraint."""
        result = self.validate_value(target, value)
        if not result.is_valid:
            raise ConstraintViolation(target, result.violations)

    def summary(self, target: str) -> list[dict]:
        return [
            {"id": c.id, "type": c.type.value, "description": c.description, "active": c.active}
            for c in self._by_target.get(target, [])
        ]

    def to_records(self) -> list[dict]:
        return [
            {"target": target, **c.to_dict()}
            for target, items in self._by_target.items()
            for c in items
        ]
