"""
Equation tutor: console entry point.

Walk through one of the catalog's solving sequences in the terminal.
``Enter`` advances, ``h`` asks for a hint, ``r`` starts over, ``q`` quits.
"""

import logging
import sys

from common.notify import LogNotifier
from common.storage import EquationStore
from tutor.equations import get_all_equations, get_equation_by_id
from tutor.sequence import SequenceState, SolvingSequenceEngine

DEFAULT_EQUATION = "lin_005"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def _print_catalog(out) -> None:
    for eq in get_all_equations():
        print(f"  {eq.id:<9} {eq.difficulty.value:<13} {eq.name}: {eq.equation}", file=out)


def _show_step(engine: SolvingSequenceEngine, out) -> None:
    step = engine.current_step
    if step is None:
        return
    print(f"\nStep {step.step}: {step.equation}", file=out)
    print(f"  {step.explanation}", file=out)


def run(equation_id: str = DEFAULT_EQUATION, read=input, out=sys.stdout):
    """Drive one session with *read* as the prompt function; returns the final stats."""
    definition = get_equation_by_id(equation_id)
    if definition is None:
        print(f'Unknown equation "{equation_id}". Available:', file=out)
        _print_catalog(out)
        return None

    stats = None
    engine = SolvingSequenceEngine(LogNotifier("tutor"))
    engine.load_equation_sequence(definition)
    print(f"{definition.name}: {definition.equation}", file=out)
    _show_step(engine, out)

    try:
        while True:
            try:
                cmd = read("\n[Enter] next  [h] hint  [r] reset  [q] quit > ").strip().lower()
            except EOFError:
                break
            if cmd == "q":
                break
            if cmd == "h":
                hint = engine.request_hint()
                if hint:
                    print(f"Hint: {hint.hint}\n  {hint.action_hint}", file=out)
                continue
            if cmd == "r":
                engine.reset_sequence()
                engine.load_equation_sequence(definition)
                _show_step(engine, out)
                continue
            if engine.advance_step() is SequenceState.COMPLETED:
                print("\nSequence complete!", file=out)
                break
            _show_step(engine, out)

        stats = engine.get_sequence_stats()
        if stats is not None:
            print(
                f"\nProgress {stats.progress:.0%}  "
                f"({stats.current_step}/{stats.total_steps} steps, {stats.hints_used} hints)",
                file=out,
            )
    finally:
        engine.destroy()
    return stats


def main(argv=None) -> None:
    argv = sys.argv[1:] if argv is None else argv
    settings = EquationStore().get_settings()
    configure_logging(settings.get("log_level", "INFO"))
    run(argv[0] if argv else DEFAULT_EQUATION)


if __name__ == "__main__":
    main()
