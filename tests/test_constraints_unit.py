import pytest

from builder.constraints import (
    Constraint,
    ConstraintSet,
    ConstraintType,
    Domain,
    describe,
    divisible_by,
    equal_to,
    even,
    fibonacci,
    find_conflict,
    greater_than,
    in_domain,
    is_fibonacci,
    is_perfect_square,
    is_prime,
    less_than,
    negative,
    non_zero,
    not_equal,
    odd,
    perfect_square,
    positive,
    prime,
    satisfies,
    value_range,
)
from common.errors import ConstraintConflict, ConstraintViolation, SchemaError


def test_number_properties() -> None:
    assert [n for n in range(20) if is_prime(n)] == [2, 3, 5, 7, 11, 13, 17, 19]
    assert is_prime(7.0) and not is_prime(7.5)
    assert [n for n in range(30) if is_perfect_square(n)] == [0, 1, 4, 9, 16, 25]
    assert [n for n in range(25) if is_fibonacci(n)] == [0, 1, 2, 3, 5, 8, 13, 21]
    assert not is_fibonacci(-1)


@pytest.mark.parametrize("constraint,good,bad", [
    (not_equal(0), 1, 0),
    (value_range(0, 10), 10, 10.5),
    (value_range(0, 10, min_inclusive=False), 0.1, 0),
    (in_domain("ℕ"), 3, 0),
    (in_domain(Domain.INTEGER), -4, 1.5),
    (in_domain("ℝ⁻"), -0.1, 0),
    (positive(), 1e-11, 0),
    (negative(), -2, 2),
    (non_zero(), -1, 0),
    (prime(), 13, 15),
    (perfect_square(), 49, 50),
    (even(), 4, 5),
    (odd(), 5, 4.0),
    (fibonacci(), 89, 90),
    (divisible_by(3), 12, 13),
    (divisible_by(0.5), 2.5, 2.25),
    (greater_than(2), 2.5, 2),
    (less_than(2), 1, 2),
    (equal_to(7), 7, 7.1),
])
def test_satisfies(constraint, good, bad) -> None:
    assert satisfies(constraint, good)
    assert not satisfies(constraint, bad)


def test_non_numbers_never_satisfy() -> None:
    for value in (None, "3", True, float("nan")):
        assert not satisfies(positive(), value)


def test_inactive_constraint_always_passes() -> None:
    c = Constraint(ConstraintType.SIGN, sign=positive().sign, active=False)
    assert satisfies(c, -5)


def test_descriptions() -> None:
    assert describe(value_range(0, 2.5, max_inclusive=False)) == "∈ [0, 2.5)"
    assert describe(in_domain("ℤ")) == "∈ ℤ"
    assert describe(positive()) == "> 0"
    assert describe(non_zero()) == "≠ 0"
    assert describe(odd()) == "must be odd"
    assert describe(divisible_by(4.0)) == "divisible by 4"
    assert equal_to(3).description == "= 3"


class TestConstruction:
    @pytest.mark.parametrize("build", [
        lambda: value_range(5, 1),
        lambda: value_range(0, None),
        lambda: greater_than("ten"),
        lambda: divisible_by(0),
        lambda: in_domain("ℂ"),
        lambda: Constraint("range", minimum=0, maximum=1),
    ])
    def test_invalid_constraints_rejected(self, build):
        with pytest.raises(SchemaError):
            build()

    def test_dict_round_trip_keeps_id(self):
        c = value_range(-1, 1, min_inclusive=False)
        data = c.to_dict()
        assert data["min"] == -1 and data["max"] == 1 and data["min_inclusive"] is False
        assert Constraint.from_dict(data) == c

    @pytest.mark.parametrize("data", [
        "not a dict",
        {"type": "mystery"},
        {"type": "sign", "sign": "sideways"},
        {"type": "sign"},
    ])
    def test_bad_records(self, data):
        with pytest.raises(SchemaError):
            Constraint.from_dict(data)

    def test_from_dict_assigns_missing_id(self):
        c = Constraint.from_dict({"type": "prime"})
        assert c.type is ConstraintType.PRIME and len(c.id) == 8


@pytest.mark.parametrize("a,b,kind", [
    (equal_to(3), not_equal(3), "equal_not_equal_conflict"),
    (equal_to(3), equal_to(4), "different_equal_values"),
    (equal_to(4), odd(), "equal_value_excluded"),
    (value_range(0, 1), value_range(2, 3), "non_overlapping_ranges"),
    (greater_than(5), less_than(5), "empty_interval"),
    (positive(), negative(), "opposite_signs"),
    (even(), odd(), "opposite_parity"),
])
def test_find_conflict_either_order(a, b, kind) -> None:
    assert find_conflict(a, b) == kind
    assert find_conflict(b, a) == kind


def test_compatible_constraints_do_not_conflict() -> None:
    assert find_conflict(value_range(0, 5), value_range(5, 9)) is None
    assert find_conflict(equal_to(4), even()) is None
    assert find_conflict(positive(), non_zero()) is None


class TestConstraintSet:
    def test_add_validate_and_check(self):
        cs = ConstraintSet()
        cs.add("n1", positive())
        cs.add("n1", even())
        cs.add("n2", prime())
        assert len(cs) == 3
        assert cs.targets() == ["n1", "n2"]

        result = cs.validate_value("n1", -3)
        assert result.is_valid is False
        assert [v.description for v in result.violations] == ["> 0", "must be even"]
        assert cs.validate_value("n1", 4).is_valid
        assert cs.validate_value("unconstrained", -3).is_valid

        with pytest.raises(ConstraintViolation) as exc:
            cs.check("n2", 4)
        assert exc.value.target == "n2"
        assert "must be prime" in str(exc.value)

    def test_conflict_leaves_set_untouched(self):
        cs = ConstraintSet()
        first = cs.add("n1", greater_than(10))
        with pytest.raises(ConstraintConflict) as exc:
            cs.add("n1", less_than(3))
        assert exc.value.conflicts[0].first_id == first.id
        assert exc.value.conflicts[0].kind == "empty_interval"
        assert cs.constraints_for("n1") == [first]

    def test_duplicate_id_rejected(self):
        cs = ConstraintSet()
        c = cs.add("n1", positive())
        with pytest.raises(SchemaError):
            cs.add("n1", c)
        with pytest.raises(SchemaError):
            cs.add("n1", {"type": "prime"})

    def test_remove_clear_and_summary(self):
        cs = ConstraintSet()
        c = cs.add("n1", divisible_by(5))
        cs.add("n2", odd())
        assert cs.summary("n1") == [
            {"id": c.id, "type": "divisible", "description": "divisible by 5", "active": True},
        ]
        assert cs.remove("n1", c.id) is True
        assert cs.targets() == ["n2"]
        cs.clear("n2")
        assert len(cs) == 0
        cs.add("n3", odd())
        cs.clear()
        assert cs.to_records() == []

    def test_records_carry_target(self):
        cs = ConstraintSet()
        c = cs.add("n7", not_equal(0))
        assert cs.to_records() == [{"target": "n7", **c.to_dict()}]
