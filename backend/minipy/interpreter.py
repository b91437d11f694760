"""MiniPy interpreter entry points.

MiniPy runs programs written in a small subset of Python (assignments,
``if``/``elif``/``else``, ``for``/``while`` loops, functions, lists, ``print``
and ``input``) and records a trace of steps for a step-by-step visualizer.
Each step is a snapshot taken after a statement ran: current line, visible
variables, call stack, list containers with highlights, an annotation and the
output so far.

The interpreter is a pure function of ``(code, inputs)``: no I/O, no shared
state between runs, so the same arguments always give the same trace. That
is what makes input replay work. When ``input()`` runs out of supplied
inputs the run stops with ``awaiting_input`` set; the caller collects a value
from the user and runs the same code again with that value appended. The
replayed trace begins with exactly the steps of the earlier one.

Runs never raise. Limits (steps, loop iterations, call depth, output size)
end a run early with ``truncated`` set, and an internal fault, including
source that does not parse, gives an empty result.
"""

import logging
from typing import Any, Dict, Iterable, Optional, Tuple

from pydantic import ValidationError

from . import subprocess_runner
from .executor import Executor
from .trace import StepStream, TraceResult

logger = logging.getLogger(__name__)


class Interpreter:
    """Configurable MiniPy interpreter.

    Tunable attributes (defaults are set in __init__):
    - max_steps: ceiling on recorded steps per run
    - max_loop: iterations allowed per loop before it is cut short
    - max_iterations: iterations allowed across all loops of a run
    - max_call_depth: active user function calls allowed
    - max_output_chars: characters a run may print

    One instance may be reused; every run builds its own ``Executor``.
    """

    def __init__(self):
        self.max_steps = 500
        self.max_loop = 10000
        self.max_iterations = 100000
        self.max_call_depth = 50
        self.max_output_chars = 5000

    def limits(self) -> Dict[str, int]:
        return {
            "max_steps": self.max_steps,
            "max_loop": self.max_loop,
            "max_iterations": self.max_iterations,
            "max_call_depth": self.max_call_depth,
            "max_output_chars": self.max_output_chars,
        }

    def stream(self, code: str, inputs: Optional[Iterable[str]] = None) -> StepStream:
        """Start a run and return a lazy, indexable view of its steps.

        Unlike ``run`` this does not catch internal faults; they surface from
        whichever pull hits them.
        """
        return StepStream(Executor(code, inputs, **self.limits()))

    def run(self, code: str, inputs: Optional[Iterable[str]] = None) -> TraceResult:
        try:
            return self.stream(code, inputs).result()
        except SyntaxError as e:
            logger.info("source does not parse: %s", e)
        except Exception:
            logger.exception("interpreter fault; returning an empty trace")
        return TraceResult()

    def run_isolated(
        self,
        code: str,
        inputs: Optional[Iterable[str]] = None,
        timeout_s: float = 2.0,
    ) -> Tuple[TraceResult, Optional[Dict[str, Any]]]:
        """Run in a short-lived worker process with this instance's limits.

        Returns ``(result, errors)``. ``errors`` is None on success, otherwise
        a ``{"code", "message"}`` dict (TIMEOUT, SUBPROCESS_FAILED or
        SUBPROCESS_ERROR) and ``result`` is empty.
        """
        try:
            rc, out, err = subprocess_runner.run_trace_in_subprocess(
                code,
                list(inputs or []),
                self.limits(),
                timeout_s=timeout_s,
            )
        except OSError as e:
            logger.exception("could not start trace worker")
            return TraceResult(), {"code": "SUBPROCESS_ERROR", "message": str(e)}
        if rc == -1:
            return TraceResult(), {"code": "TIMEOUT", "message": "Trace time limit exceeded"}
        if rc != 0:
            logger.warning("trace worker exited with %s: %s", rc, err.strip())
            return TraceResult(), {"code": "SUBPROCESS_FAILED", "message": err.strip() or out.strip()}
        try:
            return TraceResult.model_validate_json(out), None
        except ValidationError as e:
            return TraceResult(), {"code": "SUBPROCESS_FAILED", "message": f"bad worker output: {e}"}


def interpret(code: str, inputs: Optional[Iterable[str]] = None) -> TraceResult:
    """Trace ``code`` with default limits; see ``Interpreter.run``."""
    return Interpreter().run(code, inputs)
