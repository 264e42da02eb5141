"""Guided, step-by-step equation solving sequences."""

from tutor.equations import (
    Difficulty,
    EquationDefinition,
    Step,
    StepAction,
    get_all_equations,
    get_equation_by_id,
    get_equations_by_difficulty,
    get_equations_by_topic,
    parse_equation,
)
from tutor.sequence import (
    Hint,
    SequenceState,
    SequenceStats,
    SolvingSequenceEngine,
    StepExplanation,
)
