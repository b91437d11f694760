"""Step models and the recorder that captures them.

A ``Step`` is one frame of the visualizer: the line that just executed, every
visible variable (with a flag for names assigned by that statement), the call
stack, the state of the list containers and a short annotation. Steps are
built as pydantic models so the API can return them directly.

Highlights are queued by the statement or comparison that produced them and
attached to the next captured step only.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel

from .environment import Environment
from .errors import StepLimitReached
from .values import flat_scalars, format_value, type_tag

logger = logging.getLogger(__name__)

COMPARE_LEFT_COLOR = "#e3b341"
COMPARE_RIGHT_COLOR = "#58a6ff"
SWAP_COLOR = "#3fb950"
SET_COLOR = "#e3b341"

LOG_TEXT_WIDTH = 80


class Variable(BaseModel):
    name: str
    value: str
    type: str
    changed: bool = False


class IndexHighlight(BaseModel):
    index: int
    color: str
    label: Optional[str] = None


class ContainerState(BaseModel):
    """A list shown as an array; ``name`` joins every alias with ", "."""

    name: str
    values: List[Union[int, float, str]]
    highlights: List[IndexHighlight] = []


class Step(BaseModel):
    line: int
    variables: List[Variable]
    call_stack: List[str]
    containers: List[ContainerState]
    annotation: str
    log_message: str
    output: List[str] = []


@dataclass
class PendingHighlight:
    container: str
    index: int
    color: str
    label: Optional[str] = None


class StepRecorder:
    """Build Steps from the live environment and enforce the step ceiling.

    Args:
        env: the run's environment.
        lines: source lines, used for log messages.
        output: the run's output list (shared, read at capture time).
        max_steps: ceiling on captured steps.
    """

    def __init__(self, env: Environment, lines: List[str], output: List[str], max_steps: int = 500):
        self.env = env
        self.lines = lines
        self.output = output
        self.max_steps = max_steps
        self.count = 0
        self._pending: List[PendingHighlight] = []

    @property
    def exhausted(self) -> bool:
        return self.count >= self.max_steps

    def highlight(self, container: str, index: int, color: str, label: Optional[str] = None) -> None:
        self._pending.append(PendingHighlight(container, index, color, label))

    def ensure_room(self) -> None:
        """Halt the run if no further step may be recorded."""
        if self.exhausted:
            logger.info("step ceiling of %d reached", self.max_steps)
            raise StepLimitReached(f"more than {self.max_steps} steps")

    def capture(self, line: int, annotation: str) -> Step:
        self.ensure_room()
        bindings = self.env.visible()
        step = Step(
            line=line,
            variables=self._variables(bindings),
            call_stack=self.env.call_stack(),
            containers=self._containers(bindings),
            annotation=annotation,
            log_message=self._log_message(line),
            output=list(self.output),
        )
        self._pending.clear()
        self.env.clear_changed()
        self.count += 1
        return step

    def _variables(self, bindings: Dict[str, Any]) -> List[Variable]:
        return [
            Variable(
                name=name,
                value=format_value(value),
                type=type_tag(value),
                changed=name in self.env.changed,
            )
            for name, value in bindings.items()
            if not name.startswith("_")
        ]

    def _containers(self, bindings: Dict[str, Any]) -> List[ContainerState]:
        containers: List[ContainerState] = []
        by_identity: Dict[int, ContainerState] = {}
        for name, value in bindings.items():
            if name.startswith("_") or not flat_scalars(value):
                continue
            marks = [
                IndexHighlight(index=h.index, color=h.color, label=h.label)
                for h in self._pending
                if h.container == name
            ]
            state = by_identity.get(id(value))
            if state is None:
                state = ContainerState(name=name, values=list(value), highlights=marks)
                by_identity[id(value)] = state
                containers.append(state)
                continue
            # another name for a list already shown
            state.name = f"{state.name}, {name}"
            for mark in marks:
                if not any(m.index == mark.index and m.color == mark.color for m in state.highlights):
                    state.highlights.append(mark)
        return containers

    def _log_message(self, line: int) -> str:
        text = self.lines[line].strip() if 0 <= line < len(self.lines) else ""
        if len(text) > LOG_TEXT_WIDTH:
            text = text[: LOG_TEXT_WIDTH - 3] + "..."
        return f"Line {line + 1}: {text}"
