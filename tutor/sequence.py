"""
Solving-sequence engine.

Plays one authored ``EquationDefinition`` step by step for a single student
session and keeps track of progress, hints and time.

States::

    IDLE --load--> IN_PROGRESS --advance x N--> COMPLETED
      ^                 |                           |
      +------reset------+-----------reset-----------+

Transitions run synchronously.  The session clock is fed from outside through
``tick(elapsed_ms)``; ``start_timer`` wires that to a scheduler and
``destroy`` cuts it again.
"""

import logging
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from common.errors import InvalidSequence
from common.notify import NotificationLevel, Notifier, notify
from tutor.equations import EquationDefinition, Step, check_steps, parse_equation
from tutor.hints import action_hint, educational_tip
from tutor.timing import RepeatingTask, Scheduler

logger = logging.getLogger(__name__)


class SequenceState(str, Enum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass
class StudentProgress:
    total_steps: int
    current_step_index: int = 0
    hints_used: int = 0
    time_spent_ms: int = 0
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def completed(self) -> bool:
        return self.current_step_index == self.total_steps


@dataclass(frozen=True)
class SequenceStats:
    equation_id: str
    current_step: int
    total_steps: int
    progress: float
    hints_used: int
    time_spent_ms: int
    state: SequenceState

    def to_dict(self) -> dict:
        data = asdict(self)
        data["state"] = self.state.value
        return data


@dataclass(frozen=True)
class StepExplanation:
    step_number: int
    action: str
    explanation: str
    equation: str
    value: Optional[object]
    tip: str


@dataclass(frozen=True)
class Hint:
    step_number: int
    hint: str
    action_hint: str


class SolvingSequenceEngine:
    """Per-session state machine over one solving sequence."""

    def __init__(self, notifier: Optional[Notifier] = None) -> None:
        self.notifier = notifier
        self._equation: Optional[EquationDefinition] = None
        self._progress: Optional[StudentProgress] = None
        self._state = SequenceState.IDLE
        self._timer: Optional[RepeatingTask] = None
        self._auto_play: Optional[RepeatingTask] = None
        self._lock = threading.RLock()

    # ── Read-only views ──────────────────────────────────────────────

    @property
    def state(self) -> SequenceState:
        return self._state

    @property
    def equation(self) -> Optional[EquationDefinition]:
        return self._equation

    @property
    def current_step_index(self) -> int:
        return self._progress.current_step_index if self._progress else 0

    @property
    def hints_used(self) -> int:
        return self._progress.hints_used if self._progress else 0

    @property
    def time_spent_ms(self) -> int:
        return self._progress.time_spent_ms if self._progress else 0

    @property
    def current_step(self) -> Optional[Step]:
        """The step the student is looking at; ``None`` when idle or done."""
        if self._state is not SequenceState.IN_PROGRESS:
            return None
        return self._equation.steps[self._progress.current_step_index]

    @property
    def is_playing(self) -> bool:
        return self._auto_play is not None and self._auto_play.active

    # ── Transitions ──────────────────────────────────────────────────

    def load_equation_sequence(self, equation) -> SequenceState:
        """Start a fresh session on *equation* (definition or record dict).

        Raises ``InvalidSequence`` / ``SchemaError`` before touching any state
        when the data cannot be played.
        """
        if isinstance(equation, dict):
            definition = parse_equation(equation)
        elif isinstance(equation, EquationDefinition):
            check_steps(equation.steps, f"equation {equation.id}")
            definition = equation
        else:
            raise InvalidSequence("Invalid equation data - no solving steps found")

        with self._lock:
            self.stop_auto_play()
            self._equation = definition
            self._progress = StudentProgress(total_steps=len(definition.steps))
            self._state = SequenceState.IN_PROGRESS
        logger.info("Loaded sequence %s (%d steps)", definition.id, len(definition.steps))
        notify(self.notifier, f"Loaded sequence: {definition.name}", NotificationLevel.SUCCESS)
        return self._state

    def advance_step(self) -> SequenceState:
        with self._lock:
            if self._state is not SequenceState.IN_PROGRESS:
                return self._state
            self._progress.current_step_index += 1
            if self._progress.completed:
                self._complete()
            return self._state

    def _complete(self) -> None:
        self._state = SequenceState.COMPLETED
        self._progress.completed_at = datetime.now()
        self.stop_auto_play()
        logger.info(
            "Completed sequence %s: %d hints, %d ms",
            self._equation.id, self._progress.hints_used, self._progress.time_spent_ms,
        )
        notify(self.notifier, f'Congratulations! You completed "{self._equation.name}"',
               NotificationLevel.SUCCESS)

    def previous_step(self) -> bool:
        with self._lock:
            if self._state is not SequenceState.IN_PROGRESS:
                notify(self.notifier, "No sequence in progress", NotificationLevel.ERROR)
                return False
            if self._progress.current_step_index <= 0:
                notify(self.notifier, "Already at the first step", NotificationLevel.WARNING)
                return False
            self._progress.current_step_index -= 1
            return True

    def go_to_step(self, index: int) -> bool:
        """Jump to step *index* (0-based) of the sequence in progress."""
        with self._lock:
            if self._state is not SequenceState.IN_PROGRESS:
                notify(self.notifier, "No sequence in progress", NotificationLevel.ERROR)
                return False
            if not 0 <= index < self._progress.total_steps:
                notify(self.notifier, "Invalid step index", NotificationLevel.ERROR)
                return False
            self._progress.current_step_index = index
            return True

    def request_hint(self) -> Optional[Hint]:
        with self._lock:
            if self._state is SequenceState.IDLE:
                return None
            self._progress.hints_used += 1
            index = min(self._progress.current_step_index, self._progress.total_steps - 1)
            step = self._equation.steps[index]
        hint = Hint(
            step_number=index + 1,
            hint=educational_tip(step.action),
            action_hint=action_hint(step.action, step.value),
        )
        notify(self.notifier, f"Hint: {hint.hint}", NotificationLevel.INFO)
        return hint

    def reset_sequence(self) -> SequenceState:
        with self._lock:
            self.stop_auto_play()
            self._progress = None
            self._state = SequenceState.IDLE
        notify(self.notifier, "Sequence reset", NotificationLevel.INFO)
        return self._state

    def tick(self, elapsed_ms: int) -> None:
        if elapsed_ms < 0:
            raise ValueError("elapsed_ms cannot be negative")
        with self._lock:
            if self._state is SequenceState.IN_PROGRESS:
                self._progress.time_spent_ms += int(elapsed_ms)

    # ── Snapshots ────────────────────────────────────────────────────

    def get_sequence_stats(self) -> Optional[SequenceStats]:
        with self._lock:
            if self._progress is None:
                return None
            p = self._progress
            return SequenceStats(
                equation_id=self._equation.id,
                current_step=p.current_step_index,
                total_steps=p.total_steps,
                progress=p.current_step_index / p.total_steps,
                hints_used=p.hints_used,
                time_spent_ms=p.time_spent_ms,
                state=self._state,
            )

    def step_explanation(self, index: Optional[int] = None) -> Optional[StepExplanation]:
        if self._equation is None or self._progress is None:
            return None
        if index is None:
            index = self._progress.current_step_index
        if not 0 <= index < len(self._equation.steps):
            return None
        step = self._equation.steps[index]
        return StepExplanation(
            step_number=index + 1,
            action=step.action.value,
            explanation=step.explanation,
            equation=step.equation,
            value=step.value,
            tip=educational_tip(step.action),
        )

    def completion_summary(self) -> Optional[dict]:
        if self._state is not SequenceState.COMPLETED:
            return None
        eq, p = self._equation, self._progress
        return {
            "sequence_id": eq.id,
            "sequence_name": eq.name,
            "difficulty": eq.difficulty.value,
            "topic": eq.topic,
            "total_time_ms": p.time_spent_ms,
            "hints_used": p.hints_used,
            "completed_at": p.completed_at.isoformat(),
        }

    # ── Scheduling ───────────────────────────────────────────────────

    def start_timer(self, scheduler: Scheduler, interval_ms: int = 1000) -> None:
        """Feed ``tick`` from *scheduler* every *interval_ms*."""
        self.stop_timer()
        self._timer = RepeatingTask(scheduler, interval_ms, self.tick)
        self._timer.start()

    def stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer = None

    def start_auto_play(self, scheduler: Scheduler, interval_ms: int = 2000) -> bool:
        if self._state is not SequenceState.IN_PROGRESS or self.is_playing:
            return False
        self._auto_play = RepeatingTask(scheduler, interval_ms, lambda _ms: self.advance_step())
        self._auto_play.start()
        notify(self.notifier, "Auto-play started", NotificationLevel.INFO)
        return True

    def stop_auto_play(self) -> None:
        if self._auto_play is not None:
            self._auto_play.stop()
            self._auto_play = None
            notify(self.notifier, "Auto-play stopped", NotificationLevel.INFO)

    def destroy(self) -> None:
        """Cancel every scheduled callback and drop the session; idempotent."""
        with self._lock:
            self.stop_timer()
            self.stop_auto_play()
            self._equation = None
            self._progress = None
            self._state = SequenceState.IDLE
