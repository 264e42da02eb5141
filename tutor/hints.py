"""Educational tips and action hints keyed by step action."""

from typing import Optional

from builder.nodes import fmt_num
from tutor.equations import StepAction

A = StepAction

_TIPS = {
    A.ADD_BOTH_SIDES: "Remember: Whatever you do to one side of an equation, "
                      "you must do to the other side to keep it balanced.",
    A.SUBTRACT_BOTH_SIDES: "Subtraction is the opposite of addition. We subtract to undo addition.",
    A.MULTIPLY_BOTH_SIDES: "Multiplication is the opposite of division. We multiply to undo division.",
    A.DIVIDE_BOTH_SIDES: "Division is the opposite of multiplication. We divide to undo multiplication.",
    A.DISTRIBUTE: "The distributive property: a(b + c) = ab + ac",
    A.FACTOR: "Factoring is the reverse of distributing. Look for common factors or patterns.",
    A.SQUARE_ROOT_BOTH_SIDES: "Remember that square roots have both positive and negative solutions.",
    A.COMBINE_LIKE_TERMS: "Like terms have the same variable with the same exponent.",
    A.SIMPLIFY: "Always simplify your expressions to make them easier to work with.",
    A.SOLUTION: "Great job! Always check your solution by substituting back into the original equation.",
}

DEFAULT_TIP = "Each step moves us closer to isolating the variable."
DEFAULT_ACTION_HINT = "Think about what operation will help isolate the variable."


def _operand(value) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return fmt_num(value)
    return str(value)


def educational_tip(action: StepAction) -> str:
    return _TIPS.get(action, DEFAULT_TIP)


def action_hint(action: StepAction, value: Optional[object] = None) -> str:
    """A concrete nudge for *action*, using the step operand where there is one."""
    if value is not None:
        v = _operand(value)
        if action is A.ADD_BOTH_SIDES:
            return f"Try adding {v} to both sides of the equation."
        if action is A.SUBTRACT_BOTH_SIDES:
            return f"Try subtracting {v} from both sides of the equation."
        if action is A.MULTIPLY_BOTH_SIDES:
            return f"Try multiplying both sides by {v}."
        if action is A.DIVIDE_BOTH_SIDES:
            return f"Try dividing both sides by {v}."
    if action is A.DISTRIBUTE:
        return "Apply the distributive property to expand the expression."
    if action is A.FACTOR:
        return "Look for common factors or special patterns like difference of squares."
    if action in (A.SIMPLIFY, A.SIMPLIFY_DISCRIMINANT, A.COMBINE_LIKE_TERMS):
        return "Combine like terms and perform the arithmetic operations."
    if action in (A.SUBSTITUTE, A.SUBSTITUTE_BACK):
        return "Replace the variable with the expression from another equation."
    return DEFAULT_ACTION_HINT
