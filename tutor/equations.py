"""
Educational equation catalog.

Authored solving sequences for linear, quadratic, simultaneous, exponential
and logarithmic equations.  The steps are data: nothing here solves anything.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from common.errors import InvalidSequence, SchemaError


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class StepAction(str, Enum):
    ADD_BOTH_SIDES = "add_both_sides"
    SUBTRACT_BOTH_SIDES = "subtract_both_sides"
    MULTIPLY_BOTH_SIDES = "multiply_both_sides"
    DIVIDE_BOTH_SIDES = "divide_both_sides"
    SQUARE_ROOT_BOTH_SIDES = "square_root_both_sides"
    DISTRIBUTE = "distribute"
    FACTOR = "factor"
    COMBINE_LIKE_TERMS = "combine_like_terms"
    SIMPLIFY = "simplify"
    SIMPLIFY_DISCRIMINANT = "simplify_discriminant"
    ZERO_PRODUCT_PROPERTY = "zero_product_property"
    SOLVE_EACH = "solve_each"
    IDENTIFY_COEFFICIENTS = "identify_coefficients"
    QUADRATIC_FORMULA = "quadratic_formula"
    SUBSTITUTE = "substitute"
    SUBSTITUTE_BACK = "substitute_back"
    SOLVE_FOR_VARIABLE = "solve_for_variable"
    SOLVE_FOR_X = "solve_for_x"
    DIVIDE = "divide"
    FINAL_CALCULATION = "final_calculation"
    CALCULATE = "calculate"
    REWRITE_BASE = "rewrite_base"
    EQUATE_EXPONENTS = "equate_exponents"
    CONVERT_TO_EXPONENTIAL = "convert_to_exponential"
    SOLUTION = "solution"


@dataclass(frozen=True)
class Step:
    step: int
    equation: str
    action: StepAction
    explanation: str
    value: Optional[Union[int, float, str]] = None

    def to_record(self) -> dict:
        record = {
            "step": self.step,
            "equation": self.equation,
            "action": self.action.value,
            "explanation": self.explanation,
        }
        if self.value is not None:
            record["value"] = self.value
        return record


@dataclass(frozen=True)
class EquationDefinition:
    id: str
    name: str
    equation: str
    difficulty: Difficulty
    topic: str
    steps: tuple

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "equation": self.equation,
            "difficulty": self.difficulty.value,
            "topic": self.topic,
            "steps": [s.to_record() for s in self.steps],
        }

    def summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "equation": self.equation,
            "difficulty": self.difficulty.value,
            "topic": self.topic,
            "total_steps": len(self.steps),
        }


# ── Parsing / validation ────────────────────────────────────────────────

def _require_str(record: dict, key: str, where: str) -> str:
    value = record.get(key)
    if not isinstance(value, str) or not value.strip():
        raise SchemaError(f"{where}: '{key}' must be a non-empty string")
    return value


def parse_step(record: dict, where: str = "step") -> Step:
    if not isinstance(record, dict):
        raise InvalidSequence(f"{where}: expected a mapping, got {type(record).__name__}")
    ordinal = record.get("step")
    if isinstance(ordinal, bool) or not isinstance(ordinal, int) or ordinal < 1:
        raise InvalidSequence(f"{where}: 'step' must be a positive integer")
    try:
        action = StepAction(record.get("action"))
    except ValueError:
        raise SchemaError(f"{where}: unknown action {record.get('action')!r}") from None
    value = record.get("value")
    if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float, str))):
        raise SchemaError(f"{where}: 'value' must be a number or a string")
    return Step(
        step=ordinal,
        equation=_require_str(record, "equation", where),
        action=action,
        explanation=_require_str(record, "explanation", where),
        value=value,
    )


def check_steps(steps, where: str = "equation") -> tuple:
    """Validate an ordered, non-empty step sequence and return it as a tuple."""
    if steps is None or isinstance(steps, (str, bytes, dict)) or not hasattr(steps, "__iter__"):
        raise InvalidSequence(f"{where}: no solving steps found")
    steps = tuple(steps)
    if not steps:
        raise InvalidSequence(f"{where}: no solving steps found")
    previous = 0
    for s in steps:
        if not isinstance(s, Step):
            raise InvalidSequence(f"{where}: steps must be Step records")
        if s.step <= previous:
            raise InvalidSequence(
                f"{where}: step numbers must be strictly increasing ({previous} then {s.step})"
            )
        previous = s.step
    return steps


def parse_equation(record: dict) -> EquationDefinition:
    """Build an ``EquationDefinition`` from a catalog record dict."""
    if not isinstance(record, dict):
        raise SchemaError("Equation record must be a mapping")
    eq_id = _require_str(record, "id", "equation")
    where = f"equation {eq_id}"
    try:
        difficulty = Difficulty(record.get("difficulty"))
    except ValueError:
        raise SchemaError(f"{where}: unknown difficulty {record.get('difficulty')!r}") from None
    raw_steps = record.get("steps")
    if not isinstance(raw_steps, (list, tuple)) or not raw_steps:
        raise InvalidSequence(f"{where}: no solving steps found")
    steps = tuple(parse_step(s, f"{where} step #{i + 1}") for i, s in enumerate(raw_steps))
    return EquationDefinition(
        id=eq_id,
        name=_require_str(record, "name", where),
        equation=_require_str(record, "equation", where),
        difficulty=difficulty,
        topic=_require_str(record, "topic", where),
        steps=check_steps(steps, where),
    )


# ── Authored data ───────────────────────────────────────────────────────

_RECORDS = {
    "linear_basic": [
        {
            "id": "lin_001", "name": "Simple Addition", "equation": "x + 3 = 7",
            "difficulty": "beginner", "topic": "linear_equations",
            "steps": [
                {"step": 1, "equation": "x + 3 = 7", "action": "subtract_both_sides", "value": 3,
                 "explanation": "Subtract 3 from both sides to isolate x"},
                {"step": 2, "equation": "x = 7 - 3", "action": "simplify",
                 "explanation": "Simplify the right side"},
                {"step": 3, "equation": "x = 4", "action": "solution",
                 "explanation": "Solution found: x = 4"},
            ],
        },
        {
            "id": "lin_002", "name": "Simple Subtraction", "equation": "x - 5 = 12",
            "difficulty": "beginner", "topic": "linear_equations",
            "steps": [
                {"step": 1, "equation": "x - 5 = 12", "action": "add_both_sides", "value": 5,
                 "explanation": "Add 5 to both sides to isolate x"},
                {"step": 2, "equation": "x = 12 + 5", "action": "simplify",
                 "explanation": "Simplify the right side"},
                {"step": 3, "equation": "x = 17", "action": "solution",
                 "explanation": "Solution found: x = 17"},
            ],
        },
        {
            "id": "lin_003", "name": "Simple Multiplication", "equation": "3x = 15",
            "difficulty": "beginner", "topic": "linear_equations",
            "steps": [
                {"step": 1, "equation": "3x = 15", "action": "divide_both_sides", "value": 3,
                 "explanation": "Divide both sides by 3 to isolate x"},
                {"step": 2, "equation": "x = 15/3", "action": "simplify",
                 "explanation": "Simplify the fraction"},
                {"step": 3, "equation": "x = 5", "action": "solution",
                 "explanation": "Solution found: x = 5"},
            ],
        },
        {
            "id": "lin_004", "name": "Simple Division", "equation": "x/4 = 6",
            "difficulty": "beginner", "topic": "linear_equations",
            "steps": [
                {"step": 1, "equation": "x/4 = 6", "action": "multiply_both_sides", "value": 4,
                 "explanation": "Multiply both sides by 4 to isolate x"},
                {"step": 2, "equation": "x = 6 × 4", "action": "simplify",
                 "explanation": "Simplify the right side"},
                {"step": 3, "equation": "x = 24", "action": "solution",
                 "explanation": "Solution found: x = 24"},
            ],
        },
        {
            "id": "lin_005", "name": "Two-Step Equation", "equation": "2x + 5 = 13",
            "difficulty": "intermediate", "topic": "linear_equations",
            "steps": [
                {"step": 1, "equation": "2x + 5 = 13", "action": "subtract_both_sides", "value": 5,
                 "explanation": "Subtract 5 from both sides"},
                {"step": 2, "equation": "2x = 13 - 5", "action": "simplify",
                 "explanation": "Simplify the right side"},
                {"step": 3, "equation": "2x = 8", "action": "divide_both_sides", "value": 2,
                 "explanation": "Divide both sides by 2"},
                {"step": 4, "equation": "x = 8/2", "action": "simplify",
                 "explanation": "Simplify the fraction"},
                {"step": 5, "equation": "x = 4", "action": "solution",
                 "explanation": "Solution found: x = 4"},
            ],
        },
        {
            "id": "lin_006", "name": "Variables on Both Sides", "equation": "3x + 2 = x + 8",
            "difficulty": "intermediate", "topic": "linear_equations",
            "steps": [
                {"step": 1, "equation": "3x + 2 = x + 8", "action": "subtract_both_sides", "value": "x",
                 "explanation": "Subtract x from both sides to collect variables"},
                {"step": 2, "equation": "3x - x + 2 = 8", "action": "simplify",
                 "explanation": "Combine like terms on the left"},
                {"step": 3, "equation": "2x + 2 = 8", "action": "subtract_both_sides", "value": 2,
                 "explanation": "Subtract 2 from both sides"},
                {"step": 4, "equation": "2x = 8 - 2", "action": "simplify",
                 "explanation": "Simplify the right side"},
                {"step": 5, "equation": "2x = 6", "action": "divide_both_sides", "value": 2,
                 "explanation": "Divide both sides by 2"},
                {"step": 6, "equation": "x = 3", "action": "solution",
                 "explanation": "Solution found: x = 3"},
            ],
        },
    ],
    "linear_advanced": [
        {
            "id": "lin_007", "name": "Fractions and Decimals", "equation": "(x/2) + 3.5 = 8",
            "difficulty": "advanced", "topic": "linear_equations",
            "steps": [
                {"step": 1, "equation": "(x/2) + 3.5 = 8", "action": "subtract_both_sides", "value": 3.5,
                 "explanation": "Subtract 3.5 from both sides"},
                {"step": 2, "equation": "x/2 = 8 - 3.5", "action": "simplify",
                 "explanation": "Simplify the right side"},
                {"step": 3, "equation": "x/2 = 4.5", "action": "multiply_both_sides", "value": 2,
                 "explanation": "Multiply both sides by 2"},
                {"step": 4, "equation": "x = 4.5 × 2", "action": "simplify",
                 "explanation": "Simplify the right side"},
                {"step": 5, "equation": "x = 9", "action": "solution",
                 "explanation": "Solution found: x = 9"},
            ],
        },
        {
            "id": "lin_008", "name": "Distribution Required", "equation": "2(x + 3) = 14",
            "difficulty": "advanced", "topic": "linear_equations",
            "steps": [
                {"step": 1, "equation": "2(x + 3) = 14", "action": "distribute",
                 "explanation": "Apply distributive property: 2(x + 3) = 2x + 6"},
                {"step": 2, "equation": "2x + 6 = 14", "action": "subtract_both_sides", "value": 6,
                 "explanation": "Subtract 6 from both sides"},
                {"step": 3, "equation": "2x = 14 - 6", "action": "simplify",
                 "explanation": "Simplify the right side"},
                {"step": 4, "equation": "2x = 8", "action": "divide_both_sides", "value": 2,
                 "explanation": "Divide both sides by 2"},
                {"step": 5, "equation": "x = 4", "action": "solution",
                 "explanation": "Solution found: x = 4"},
            ],
        },
    ],
    "quadratic": [
        {
            "id": "quad_001", "name": "Perfect Square", "equation": "x² = 16",
            "difficulty": "intermediate", "topic": "quadratic_equations",
            "steps": [
                {"step": 1, "equation": "x² = 16", "action": "square_root_both_sides",
                 "explanation": "Take the square root of both sides"},
                {"step": 2, "equation": "x = ±√16", "action": "simplify",
                 "explanation": "Remember both positive and negative roots"},
                {"step": 3, "equation": "x = ±4", "action": "solution",
                 "explanation": "Solutions: x = 4 or x = -4"},
            ],
        },
        {
            "id": "quad_002", "name": "Factoring Simple", "equation": "x² + 5x + 6 = 0",
            "difficulty": "intermediate", "topic": "quadratic_equations",
            "steps": [
                {"step": 1, "equation": "x² + 5x + 6 = 0", "action": "factor",
                 "explanation": "Find two numbers that multiply to 6 and add to 5: 2 and 3"},
                {"step": 2, "equation": "(x + 2)(x + 3) = 0", "action": "zero_product_property",
                 "explanation": "If the product equals zero, one factor must be zero"},
                {"step": 3, "equation": "x + 2 = 0  or  x + 3 = 0", "action": "solve_each",
                 "explanation": "Solve each equation separately"},
                {"step": 4, "equation": "x = -2  or  x = -3", "action": "solution",
                 "explanation": "Solutions: x = -2 or x = -3"},
            ],
        },
        {
            "id": "quad_003", "name": "Quadratic Formula", "equation": "x² + 3x - 4 = 0",
            "difficulty": "advanced", "topic": "quadratic_equations",
            "steps": [
                {"step": 1, "equation": "x² + 3x - 4 = 0", "action": "identify_coefficients",
                 "explanation": "Identify: a = 1, b = 3, c = -4"},
                {"step": 2, "equation": "x = (-b ± √(b² - 4ac)) / 2a", "action": "quadratic_formula",
                 "explanation": "Apply the quadratic formula"},
                {"step": 3, "equation": "x = (-3 ± √(3² - 4(1)(-4))) / 2(1)", "action": "substitute",
                 "explanation": "Substitute the values"},
                {"step": 4, "equation": "x = (-3 ± √(9 + 16)) / 2", "action": "simplify_discriminant",
                 "explanation": "Simplify under the square root"},
                {"step": 5, "equation": "x = (-3 ± √25) / 2", "action": "simplify",
                 "explanation": "Continue simplifying"},
                {"step": 6, "equation": "x = (-3 ± 5) / 2", "action": "final_calculation",
                 "explanation": "Calculate both solutions"},
                {"step": 7, "equation": "x = 1  or  x = -4", "action": "solution",
                 "explanation": "Solutions: x = 1 or x = -4"},
            ],
        },
    ],
    "systems": [
        {
            "id": "sys_001", "name": "Substitution Method", "equation": "x + y = 5\n2x - y = 1",
            "difficulty": "intermediate", "topic": "systems_of_equations",
            "steps": [
                {"step": 1, "equation": "x + y = 5\n2x - y = 1", "action": "solve_for_variable",
                 "explanation": "Solve the first equation for y: y = 5 - x"},
                {"step": 2, "equation": "y = 5 - x\n2x - y = 1", "action": "substitute",
                 "explanation": "Substitute y = 5 - x into the second equation"},
                {"step": 3, "equation": "2x - (5 - x) = 1", "action": "simplify",
                 "explanation": "Distribute the negative sign"},
                {"step": 4, "equation": "2x - 5 + x = 1", "action": "combine_like_terms",
                 "explanation": "Combine like terms"},
                {"step": 5, "equation": "3x - 5 = 1", "action": "solve_for_x",
                 "explanation": "Add 5 to both sides"},
                {"step": 6, "equation": "3x = 6", "action": "divide",
                 "explanation": "Divide by 3"},
                {"step": 7, "equation": "x = 2", "action": "substitute_back",
                 "explanation": "Substitute x = 2 back: y = 5 - 2 = 3"},
                {"step": 8, "equation": "x = 2, y = 3", "action": "solution",
                 "explanation": "Solution: (2, 3)"},
            ],
        },
    ],
    "exponential": [
        {
            "id": "exp_001", "name": "Simple Exponential", "equation": "2^x = 8",
            "difficulty": "intermediate", "topic": "exponential_equations",
            "steps": [
                {"step": 1, "equation": "2^x = 8", "action": "rewrite_base",
                 "explanation": "Rewrite 8 as a power of 2: 8 = 2³"},
                {"step": 2, "equation": "2^x = 2³", "action": "equate_exponents",
                 "explanation": "If bases are equal, exponents must be equal"},
                {"step": 3, "equation": "x = 3", "action": "solution",
                 "explanation": "Solution: x = 3"},
            ],
        },
        {
            "id": "log_001", "name": "Simple Logarithm", "equation": "log₂(x) = 3",
            "difficulty": "intermediate", "topic": "logarithmic_equations",
            "steps": [
                {"step": 1, "equation": "log₂(x) = 3", "action": "convert_to_exponential",
                 "explanation": "Convert to exponential form: 2³ = x"},
                {"step": 2, "equation": "2³ = x", "action": "calculate",
                 "explanation": "Calculate 2³"},
                {"step": 3, "equation": "x = 8", "action": "solution",
                 "explanation": "Solution: x = 8"},
            ],
        },
    ],
}

EDUCATIONAL_EQUATIONS = {
    category: tuple(parse_equation(r) for r in records)
    for category, records in _RECORDS.items()
}


# ── Queries ─────────────────────────────────────────────────────────────

def get_all_equations() -> list[EquationDefinition]:
    return [eq for group in EDUCATIONAL_EQUATIONS.values() for eq in group]


def get_equation_by_id(equation_id: str) -> Optional[EquationDefinition]:
    for eq in get_all_equations():
        if eq.id == equation_id:
            return eq
    return None


def get_equations_by_difficulty(difficulty) -> list[EquationDefinition]:
    difficulty = Difficulty(difficulty)
    return [eq for eq in get_all_equations() if eq.difficulty is difficulty]


def get_equations_by_topic(topic: str) -> list[EquationDefinition]:
    return [eq for eq in get_all_equations() if eq.topic == topic]


def topics() -> list[str]:
    """Distinct topic tags, in catalog order."""
    seen: list[str] = []
    for eq in get_all_equations():
        if eq.topic not in seen:
            seen.append(eq.topic)
    return seen
