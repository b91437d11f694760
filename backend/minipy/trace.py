"""Pull-based access to a run's steps.

``StepStream`` drives an ``Executor`` lazily: a step is computed only when a
consumer asks for it (by iterating or by index), and computed steps are
cached so indexing stays cheap and repeatable. ``result()`` drains the stream
into the eager ``TraceResult`` the API returns.

The stream is also where the runtime's halt signals become flags:
``InputRequired`` sets ``awaiting_input``. Every other halt sets
``truncated``: an attempt to record a step past ``max_steps``, the call
depth, output and loop budget limits, and host recursion exhaustion. In every case the steps gathered so far are a valid prefix of
the full trace.
"""

import logging
from typing import Iterator, List

from pydantic import BaseModel

from .errors import ExecutionHalt, InputRequired
from .executor import Executor
from .recorder import Step

logger = logging.getLogger(__name__)


class TraceResult(BaseModel):
    steps: List[Step] = []
    output: List[str] = []
    awaiting_input: bool = False
    truncated: bool = False


class StepStream:
    def __init__(self, executor: Executor):
        self._executor = executor
        self._source = executor.run()
        self._steps: List[Step] = []
        self.awaiting_input = False
        self.truncated = False
        self.finished = False

    @property
    def output(self) -> List[str]:
        """Output written so far (grows as more steps are pulled)."""
        return list(self._executor.output)

    def _advance(self) -> bool:
        """Pull one more step; False once the run has ended."""
        if self.finished:
            return False
        try:
            step = next(self._source)
        except StopIteration:
            self.finished = True
            return False
        except InputRequired as exc:
            logger.debug("run suspended: %s", exc)
            self.awaiting_input = True
            self.finished = True
            return False
        except (ExecutionHalt, RecursionError) as exc:
            logger.warning("run halted early: %s", exc)
            self.truncated = True
            self.finished = True
            return False
        except Exception:
            self.finished = True
            raise
        self._steps.append(step)
        return True

    def __iter__(self) -> Iterator[Step]:
        position = 0
        while position < len(self._steps) or self._advance():
            yield self._steps[position]
            position += 1

    def __getitem__(self, index: int) -> Step:
        if index < 0:
            return self.materialize()[index]
        while index >= len(self._steps) and self._advance():
            pass
        return self._steps[index]

    def __len__(self) -> int:
        return len(self.materialize())

    def materialize(self) -> List[Step]:
        while self._advance():
            pass
        return list(self._steps)

    def result(self) -> TraceResult:
        steps = self.materialize()
        return TraceResult(
            steps=steps,
            output=self.output,
            awaiting_input=self.awaiting_input,
            truncated=self.truncated,
        )
