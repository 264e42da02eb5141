import pytest

from common.errors import InvalidSequence, SchemaError
from tutor.equations import (
    EDUCATIONAL_EQUATIONS,
    Difficulty,
    Step,
    StepAction,
    check_steps,
    get_all_equations,
    get_equation_by_id,
    get_equations_by_difficulty,
    get_equations_by_topic,
    parse_equation,
    parse_step,
    topics,
)
from tutor.hints import DEFAULT_ACTION_HINT, DEFAULT_TIP, action_hint, educational_tip


def _record(**overrides) -> dict:
    record = {
        "id": "t_001", "name": "Test", "equation": "x + 1 = 2",
        "difficulty": "beginner", "topic": "linear_equations",
        "steps": [
            {"step": 1, "equation": "x + 1 = 2", "action": "subtract_both_sides", "value": 1,
             "explanation": "Subtract 1 from both sides"},
            {"step": 2, "equation": "x = 1", "action": "solution",
             "explanation": "Solution found: x = 1"},
        ],
    }
    record.update(overrides)
    return record


# ── Catalog ─────────────────────────────────────────────────────────────

class TestCatalog:
    def test_catalog_size_and_unique_ids(self):
        ids = [eq.id for eq in get_all_equations()]
        assert len(ids) == 14
        assert len(set(ids)) == 14

    def test_categories(self):
        assert set(EDUCATIONAL_EQUATIONS) == {
            "linear_basic", "linear_advanced", "quadratic", "systems", "exponential",
        }

    def test_every_sequence_is_ordered_and_non_empty(self):
        for eq in get_all_equations():
            assert eq.steps, eq.id
            numbers = [s.step for s in eq.steps]
            assert numbers == sorted(set(numbers)), eq.id

    def test_two_step_equation(self):
        eq = get_equation_by_id("lin_005")
        assert eq.equation == "2x + 5 = 13"
        assert eq.difficulty is Difficulty.INTERMEDIATE
        assert [s.action for s in eq.steps] == [
            StepAction.SUBTRACT_BOTH_SIDES,
            StepAction.SIMPLIFY,
            StepAction.DIVIDE_BOTH_SIDES,
            StepAction.SIMPLIFY,
            StepAction.SOLUTION,
        ]
        assert eq.steps[0].value == 5
        assert eq.steps[-1].equation == "x = 4"

    def test_unknown_id(self):
        assert get_equation_by_id("nope") is None

    def test_filter_by_difficulty(self):
        beginner = get_equations_by_difficulty("beginner")
        assert beginner
        assert all(eq.difficulty is Difficulty.BEGINNER for eq in beginner)
        assert get_equations_by_difficulty(Difficulty.ADVANCED)
        with pytest.raises(ValueError):
            get_equations_by_difficulty("expert")

    def test_filter_by_topic(self):
        quads = get_equations_by_topic("quadratic_equations")
        assert {eq.id for eq in quads} == {"quad_001", "quad_002", "quad_003"}
        assert get_equations_by_topic("trigonometry") == []
        assert topics()[0] == "linear_equations"
        assert len(topics()) == len(set(topics()))

    def test_records_round_trip(self):
        eq = get_equation_by_id("lin_007")
        assert parse_equation(eq.to_record()) == eq

    def test_summary(self):
        summary = get_equation_by_id("lin_005").summary()
        assert summary["total_steps"] == 5
        assert "steps" not in summary


# ── Parsing ─────────────────────────────────────────────────────────────

class TestParsing:
    def test_parse_valid_record(self):
        eq = parse_equation(_record())
        assert eq.id == "t_001"
        assert eq.steps[0] == Step(1, "x + 1 = 2", StepAction.SUBTRACT_BOTH_SIDES,
                                   "Subtract 1 from both sides", 1)

    @pytest.mark.parametrize("steps", [None, [], "steps"])
    def test_missing_steps(self, steps):
        with pytest.raises(InvalidSequence):
            parse_equation(_record(steps=steps))

    def test_out_of_order_steps(self):
        record = _record()
        record["steps"] = list(reversed(record["steps"]))
        with pytest.raises(InvalidSequence, match="strictly increasing"):
            parse_equation(record)

    def test_duplicate_step_numbers(self):
        record = _record()
        record["steps"][1]["step"] = 1
        with pytest.raises(InvalidSequence):
            parse_equation(record)

    def test_unknown_action(self):
        record = _record()
        record["steps"][0]["action"] = "guess"
        with pytest.raises(SchemaError, match="guess"):
            parse_equation(record)

    def test_unknown_difficulty(self):
        with pytest.raises(SchemaError):
            parse_equation(_record(difficulty="expert"))

    def test_missing_text_fields(self):
        with pytest.raises(SchemaError):
            parse_equation(_record(name=""))
        with pytest.raises(SchemaError):
            parse_step({"step": 1, "action": "simplify", "explanation": "x"})

    @pytest.mark.parametrize("ordinal", [0, -1, "1", True, None])
    def test_bad_step_number(self, ordinal):
        with pytest.raises(InvalidSequence):
            parse_step({"step": ordinal, "equation": "x", "action": "simplify",
                        "explanation": "x"})

    def test_invalid_sequence_is_schema_error(self):
        assert issubclass(InvalidSequence, SchemaError)

    def test_check_steps_rejects_plain_dicts(self):
        with pytest.raises(InvalidSequence):
            check_steps([{"step": 1}])
        with pytest.raises(InvalidSequence):
            check_steps(())


# ── Hints ───────────────────────────────────────────────────────────────

class TestHints:
    def test_action_hint_with_operand(self):
        assert action_hint(StepAction.SUBTRACT_BOTH_SIDES, 5) == \
            "Try subtracting 5 from both sides of the equation."
        assert action_hint(StepAction.DIVIDE_BOTH_SIDES, 2) == "Try dividing both sides by 2."
        assert action_hint(StepAction.ADD_BOTH_SIDES, "x") == \
            "Try adding x to both sides of the equation."
        assert action_hint(StepAction.MULTIPLY_BOTH_SIDES, 0.5) == "Try multiplying both sides by 0.5."

    def test_action_hint_without_operand_falls_back(self):
        assert action_hint(StepAction.SUBTRACT_BOTH_SIDES) == DEFAULT_ACTION_HINT
        assert action_hint(StepAction.SOLUTION) == DEFAULT_ACTION_HINT
        assert "distributive" in action_hint(StepAction.DISTRIBUTE)

    def test_tips(self):
        assert "undo addition" in educational_tip(StepAction.SUBTRACT_BOTH_SIDES)
        assert educational_tip(StepAction.REWRITE_BASE) == DEFAULT_TIP
