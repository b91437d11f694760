"""Statement execution for one MiniPy run.

``Executor`` owns all mutable state of a single interpretation: the parsed
program, the environment, the output lines, the input cursor and the step
recorder. ``Executor.run()`` is a generator that yields one ``Step`` per
recorded event in execution order; nothing is materialised up front, so the
consumer decides how far execution goes.

Statements are dispatched by AST node type through a handler map. Node types
without a handler are skipped silently (no step), which is how the runtime
treats the parts of Python it does not support.

Behaviour summary (annotations in quotes):
  - ``if``/``elif`` record one step per condition checked ("Condition is
    true"/"Condition is false"); entering ``else`` records "Else branch".
  - ``for`` and ``while`` headers record nothing; each loop is capped at
    ``max_loop`` iterations and all loops share ``max_iterations``.
  - assignments, ``print``, ``return``, swaps, list method calls, ``pass``,
    ``break`` and ``continue`` record one step each.
  - a user function called directly from a statement records
    "Calling f()" once its frame is pushed.
"""

import ast
import inspect
import logging
from typing import Any, Generator, Iterable, Iterator, List, Optional

from .environment import Environment, FunctionDef
from .errors import (
    BreakSignal,
    CallDepthExceeded,
    ContinueSignal,
    InputRequired,
    LoopBudgetExceeded,
    LoopControl,
    OutputLimitExceeded,
    ReturnSignal,
)
from .evaluator import BINARY_OPERATORS, LIST_METHODS, ExpressionEvaluator
from .recorder import SET_COLOR, SWAP_COLOR, Step, StepRecorder
from .values import MAX_SEQUENCE_LEN, binary_op, format_value, normalize_index, range_bounds, sequence_size, to_index

logger = logging.getLogger(__name__)

Execution = Generator[Step, None, Any]


class Executor:
    """Run one program against one list of inputs.

    Args:
        code: program source.
        inputs: values returned by successive ``input()`` calls.
        max_steps: step ceiling enforced by the recorder.
        max_loop: per-loop iteration cap; the loop ends and execution goes on.
        max_iterations: iteration budget shared by every loop in the run.
        max_call_depth: maximum number of active user function calls.
        max_output_chars: total characters the program may write.
    """

    def __init__(
        self,
        code: str,
        inputs: Optional[Iterable[str]] = None,
        *,
        max_steps: int = 500,
        max_loop: int = 10000,
        max_iterations: int = 100000,
        max_call_depth: int = 50,
        max_output_chars: int = 5000,
    ):
        self.code = code
        self.lines = code.split("\n")
        self.inputs: List[str] = [str(value) for value in (inputs or [])]
        self.max_loop = max_loop
        self.max_iterations = max_iterations
        self.max_call_depth = max_call_depth
        self.max_output_chars = max_output_chars

        self.env = Environment()
        self.output: List[str] = []
        self.recorder = StepRecorder(self.env, self.lines, self.output, max_steps=max_steps)
        self.evaluator = ExpressionEvaluator(self)
        self.current_line = 0
        self._input_index = 0
        self._output_chars = 0
        self._line_open = False
        self._iterations = 0

        self._handlers = {
            ast.FunctionDef: self._exec_function_def,
            ast.For: self._exec_for,
            ast.While: self._exec_while,
            ast.If: self._exec_if,
            ast.Return: self._exec_return,
            ast.Assign: self._exec_assign,
            ast.AugAssign: self._exec_aug_assign,
            ast.Expr: self._exec_expr,
            ast.Pass: self._exec_pass,
            ast.Break: self._exec_break,
            ast.Continue: self._exec_continue,
        }

    # --- Driver ----------------------------------------------------------
    def run(self) -> Execution:
        """Parse the program and execute it, yielding steps as they happen.

        Raises SyntaxError (on first pull) for source that does not parse and
        lets halt signals such as ``InputRequired`` propagate to the consumer.
        """
        tree = ast.parse(self.code)
        for fdef in self._harvest_functions(tree.body):
            self.env.declare_function(fdef)
        try:
            yield from self.exec_block(tree.body)
        except (ReturnSignal, LoopControl):
            logger.debug("control flow statement outside a function or loop ended the program")

    def _harvest_functions(self, body: List[ast.stmt]) -> Iterator[FunctionDef]:
        for node in body:
            if isinstance(node, ast.FunctionDef):
                yield FunctionDef.from_node(node)
            elif isinstance(node, (ast.If, ast.For, ast.While)):
                yield from self._harvest_functions(node.body + node.orelse)

    def exec_block(self, body: List[ast.stmt]) -> Execution:
        for node in body:
            yield from self.exec_statement(node)

    def exec_statement(self, node: ast.stmt) -> Execution:
        handler = self._handlers.get(type(node))
        if handler is None:
            logger.debug("skipping unsupported %s at line %d", type(node).__name__, node.lineno)
            return
        self.current_line = node.lineno - 1
        result = handler(node)
        if inspect.isgenerator(result):
            yield from result

    # --- Output and input ------------------------------------------------
    def emit(self, text: str, end: str = "\n") -> None:
        """Write program output; ``output`` holds one entry per line.

        Text written without a trailing newline leaves the last line open,
        and the next write continues it (``print("a", end="")``).
        """
        self.recorder.ensure_room()
        written = text + end
        if not written:
            return
        pieces = written.split("\n")
        tail = pieces.pop()
        if tail:
            pieces.append(tail)
        for position, piece in enumerate(pieces):
            if self._output_chars + len(piece) > self.max_output_chars:
                logger.warning("output limit of %d characters reached", self.max_output_chars)
                raise OutputLimitExceeded(f"output exceeds {self.max_output_chars} characters")
            self._output_chars += len(piece)
            if position == 0 and self._line_open:
                self.output[-1] += piece
            else:
                self.output.append(piece)
        self._line_open = bool(tail)

    def next_input(self) -> str:
        if self._input_index >= len(self.inputs):
            raise InputRequired(f"input #{self._input_index + 1} needed at line {self.current_line + 1}")
        value = self.inputs[self._input_index]
        self._input_index += 1
        return value

    # --- Calls -----------------------------------------------------------
    def call_function(self, fdef: FunctionDef, args: List[Any], announce: bool = False) -> Execution:
        """Run a user function in a new frame and return its value.

        When ``announce`` is set a "Calling f()" step is recorded at the call
        site after the parameters are bound.
        """
        if self.env.depth >= self.max_call_depth:
            logger.warning("call depth limit of %d reached calling %s()", self.max_call_depth, fdef.name)
            raise CallDepthExceeded(f"{fdef.name}() exceeds call depth {self.max_call_depth}")
        call_line = self.current_line
        self.env.push_frame(fdef.name)
        try:
            for position, param in enumerate(fdef.params):
                self.env.set(param, args[position] if position < len(args) else None)
            if announce:
                yield self.recorder.capture(call_line, f"Calling {fdef.name}()")
            yield from self.exec_block(list(fdef.body))
        except ReturnSignal as signal:
            return signal.value
        except LoopControl:
            logger.debug("break/continue outside a loop ended %s()", fdef.name)
        finally:
            self.env.pop_frame()
            self.current_line = call_line
        return None

    def _user_call(self, node: ast.AST) -> Optional[FunctionDef]:
        if isinstance(node, ast.Call) and isinstance(node.func, ast.Name):
            return self.env.functions.get(node.func.id)
        return None

    # --- Statement handlers ----------------------------------------------
    def _exec_function_def(self, node: ast.FunctionDef) -> None:
        # top-level definitions were declared before execution started
        if node.name not in self.env.functions:
            self.env.declare_function(FunctionDef.from_node(node))

    def _exec_pass(self, node):
        yield self.recorder.capture(self.current_line, "No operation")

    def _exec_break(self, node):
        yield self.recorder.capture(self.current_line, "Breaking out of loop")
        raise BreakSignal()

    def _exec_continue(self, node):
        yield self.recorder.capture(self.current_line, "Continuing to next iteration")
        raise ContinueSignal()

    def _exec_return(self, node: ast.Return):
        line = self.current_line
        if node.value is None:
            yield self.recorder.capture(line, "Returning")
            raise ReturnSignal(None)
        value = yield from self.evaluator.evaluate(node.value)
        yield self.recorder.capture(line, f"Returning {format_value(value)}")
        raise ReturnSignal(value)

    def _exec_if(self, node: ast.If):
        while True:
            self.current_line = node.lineno - 1
            condition = yield from self.evaluator.evaluate(node.test)
            verdict = "true" if condition else "false"
            yield self.recorder.capture(node.lineno - 1, f"Condition is {verdict}")
            if condition:
                yield from self.exec_block(node.body)
                return
            if self._is_elif(node):
                node = node.orelse[0]
                continue
            if node.orelse:
                yield self.recorder.capture(self._else_line(node), "Else branch")
                yield from self.exec_block(node.orelse)
            return

    def _is_elif(self, node: ast.If) -> bool:
        if len(node.orelse) != 1 or not isinstance(node.orelse[0], ast.If):
            return False
        branch_line = self.lines[node.orelse[0].lineno - 1]
        return branch_line.lstrip().startswith("elif")

    def _else_line(self, node: ast.If) -> int:
        """0-based index of the ``else:`` line, which the AST does not record."""
        first = node.orelse[0].lineno - 1
        last_body = node.body[-1].end_lineno or node.body[-1].lineno
        for index in range(last_body, first + 1):
            if self.lines[index].lstrip().startswith("else"):
                return index
        return max(first - 1, 0)

    def _count_iteration(self) -> None:
        self._iterations += 1
        if self._iterations > self.max_iterations:
            logger.warning("loop budget of %d iterations exhausted", self.max_iterations)
            raise LoopBudgetExceeded(f"more than {self.max_iterations} loop iterations")

    def _exec_for(self, node: ast.For):
        if not isinstance(node.target, ast.Name):
            logger.debug("skipping for loop with unsupported target at line %d", node.lineno)
            return
        if self._is_range_call(node.iter):
            args = yield from self.evaluator.evaluate_all(node.iter.args)
            values: Iterable[Any] = range(*range_bounds(args))
        else:
            iterable = yield from self.evaluator.evaluate(node.iter)
            if not isinstance(iterable, (list, str)):
                return
            # list iteration is live: items appended during the loop are visited
            values = iterable
        name = node.target.id
        iterations = 0
        for value in values:
            if iterations >= self.max_loop:
                logger.info("for loop at line %d stopped after %d iterations", node.lineno, iterations)
                return
            iterations += 1
            self._count_iteration()
            self.env.set(name, value)
            try:
                yield from self.exec_block(node.body)
            except BreakSignal:
                return
            except ContinueSignal:
                continue
        if node.orelse:
            yield from self.exec_block(node.orelse)

    def _is_range_call(self, node: ast.AST) -> bool:
        return (
            isinstance(node, ast.Call)
            and isinstance(node.func, ast.Name)
            and node.func.id == "range"
            and "range" not in self.env.functions
        )

    def _exec_while(self, node: ast.While):
        iterations = 0
        while True:
            self.current_line = node.lineno - 1
            condition = yield from self.evaluator.evaluate(node.test)
            if not condition:
                break
            if iterations >= self.max_loop:
                logger.info("while loop at line %d stopped after %d iterations", node.lineno, iterations)
                return
            iterations += 1
            self._count_iteration()
            try:
                yield from self.exec_block(node.body)
            except BreakSignal:
                return
            except ContinueSignal:
                continue
        if node.orelse:
            yield from self.exec_block(node.orelse)

    def _exec_expr(self, node: ast.Expr):
        call = node.value
        if not isinstance(call, ast.Call):
            return
        line = self.current_line
        fdef = self._user_call(call)
        if fdef is not None:
            args = yield from self.evaluator.evaluate_all(call.args)
            yield from self.call_function(fdef, args, announce=True)
            return
        func = call.func
        if isinstance(func, ast.Name) and func.id == "print":
            yield from self._exec_print(call)
            return
        if self._is_list_method(func):
            yield from self.evaluator.evaluate(call)
            yield self.recorder.capture(line, ast.unparse(call))
            return
        yield from self.evaluator.evaluate(call)

    def _is_list_method(self, func: ast.AST) -> bool:
        return (
            isinstance(func, ast.Attribute)
            and isinstance(func.value, ast.Name)
            and func.attr in LIST_METHODS
            and isinstance(self.env.get(func.value.id), list)
        )

    def _exec_print(self, call: ast.Call):
        args = yield from self.evaluator.evaluate_all(call.args)
        options = {"sep": " ", "end": "\n"}
        for keyword in call.keywords:
            if keyword.arg in options:
                value = yield from self.evaluator.evaluate(keyword.value)
                if value is not None:
                    options[keyword.arg] = format_value(value)
        self.emit(options["sep"].join(format_value(value) for value in args), end=options["end"])
        yield self.recorder.capture(self.current_line, "Output")

    def _exec_assign(self, node: ast.Assign):
        if len(node.targets) != 1:
            logger.debug("skipping chained assignment at line %d", node.lineno)
            return
        target = node.targets[0]
        if isinstance(target, ast.Tuple):
            yield from self._exec_swap(target, node.value)
        elif isinstance(target, ast.Subscript) and not isinstance(target.slice, ast.Slice):
            yield from self._exec_store_item(target, node.value)
        elif isinstance(target, ast.Name):
            yield from self._exec_store_name(target.id, node.value)

    def _exec_store_name(self, name: str, value_node: ast.AST):
        line = self.current_line
        fdef = self._user_call(value_node)
        if fdef is not None:
            args = yield from self.evaluator.evaluate_all(value_node.args)
            result = yield from self.call_function(fdef, args, announce=True)
            self.env.set(name, result)
            yield self.recorder.capture(line, f"{name} = {format_value(result)}")
            return
        value = yield from self.evaluator.evaluate(value_node)
        self.env.set(name, value)
        yield self.recorder.capture(line, f"Assigning {name} = {format_value(value)}")

    def _store_item(self, container: Any, raw_index: Any, value: Any) -> Optional[int]:
        """Write ``container[index] = value``; returns the position written or None."""
        if not isinstance(container, list):
            return None
        position = normalize_index(container, to_index(raw_index))
        if position is None:
            return None
        container[position] = value
        return position

    def _container_name(self, target: ast.Subscript) -> Optional[str]:
        return target.value.id if isinstance(target.value, ast.Name) else None

    def _exec_store_item(self, target: ast.Subscript, value_node: ast.AST):
        line = self.current_line
        value = yield from self.evaluator.evaluate(value_node)
        container = yield from self.evaluator.evaluate(target.value)
        raw_index = yield from self.evaluator.evaluate(target.slice)
        position = self._store_item(container, raw_index, value)
        name = self._container_name(target)
        if position is not None and name is not None:
            self.recorder.highlight(name, position, SET_COLOR, "set")
            self.env.mark_changed(name)
        shown = position if position is not None else format_value(raw_index)
        yield self.recorder.capture(line, f"{name or ast.unparse(target.value)}[{shown}] = {format_value(value)}")

    def _exec_swap(self, target: ast.Tuple, value_node: ast.AST):
        slots = target.elts
        if not (
            isinstance(value_node, ast.Tuple)
            and len(value_node.elts) == len(slots)
            and all(isinstance(s, ast.Subscript) and not isinstance(s.slice, ast.Slice) for s in slots)
        ):
            logger.debug("skipping tuple assignment at line %d", self.current_line + 1)
            return
        line = self.current_line
        # the whole right-hand side is read before anything is written
        values = yield from self.evaluator.evaluate_all(value_node.elts)
        resolved = []
        for slot in slots:
            container = yield from self.evaluator.evaluate(slot.value)
            raw_index = yield from self.evaluator.evaluate(slot.slice)
            resolved.append((slot, container, raw_index))
        for (slot, container, raw_index), value in zip(resolved, values):
            position = self._store_item(container, raw_index, value)
            name = self._container_name(slot)
            if position is not None and name is not None:
                self.recorder.highlight(name, position, SWAP_COLOR, "swap")
                self.env.mark_changed(name)
        yield self.recorder.capture(line, "Swapping elements")

    def _exec_aug_assign(self, node: ast.AugAssign):
        op = BINARY_OPERATORS.get(type(node.op))
        if op is None:
            logger.debug("skipping unsupported augmented operator at line %d", node.lineno)
            return
        line = self.current_line
        target = node.target
        if isinstance(target, ast.Name):
            current = self.env.get(target.id)
            rhs = yield from self.evaluator.evaluate(node.value)
            if op == "+" and isinstance(current, list) and isinstance(rhs, list):
                # += extends the list in place, as aliases expect
                if sequence_size(current) + sequence_size(rhs) <= MAX_SEQUENCE_LEN:
                    current.extend(rhs)
                    self.env.mark_changed(target.id)
            else:
                result = binary_op(op, current, rhs)
                if result is not None:
                    self.env.set(target.id, result)
            yield self.recorder.capture(line, f"{target.id} {op}= {format_value(rhs)}")
            return
        if not isinstance(target, ast.Subscript) or isinstance(target.slice, ast.Slice):
            return
        container = yield from self.evaluator.evaluate(target.value)
        raw_index = yield from self.evaluator.evaluate(target.slice)
        rhs = yield from self.evaluator.evaluate(node.value)
        name = self._container_name(target)
        position = normalize_index(container, to_index(raw_index)) if isinstance(container, list) else None
        if position is not None:
            result = binary_op(op, container[position], rhs)
            if result is not None:
                container[position] = result
                if name is not None:
                    self.recorder.highlight(name, position, SET_COLOR, "set")
                    self.env.mark_changed(name)
        shown = position if position is not None else format_value(raw_index)
        yield self.recorder.capture(line, f"{name or ast.unparse(target.value)}[{shown}] {op}= {format_value(rhs)}")
