"""Signals used inside the MiniPy runtime.

None of these reach callers of ``Interpreter.run``. Halt signals stop a trace
early and are turned into flags on the result by the step stream; control
flow signals carry ``return``/``break``/``continue`` out of nested handlers
and are caught by the enclosing call or loop.
"""

from typing import Any


class ExecutionHalt(Exception):
    """Stops the current run; every step recorded so far stays valid."""


class InputRequired(ExecutionHalt):
    """Raised when ``input()`` runs past the supplied inputs.

    The run ends with ``awaiting_input`` set. Callers resume by running the
    same source again with one more input appended.
    """


class StepLimitReached(ExecutionHalt):
    """Raised when the run tries to record a step past ``max_steps``."""


class CallDepthExceeded(ExecutionHalt):
    pass


class OutputLimitExceeded(ExecutionHalt):
    pass


class LoopBudgetExceeded(ExecutionHalt):
    pass


class ReturnSignal(Exception):
    def __init__(self, value: Any = None):
        super().__init__("return")
        self.value = value


class LoopControl(Exception):
    pass


class BreakSignal(LoopControl):
    pass


class ContinueSignal(LoopControl):
    pass
