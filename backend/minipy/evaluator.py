"""Expression evaluation for MiniPy.

``ExpressionEvaluator`` walks Python ``ast`` expression nodes, much like a
``NodeVisitor`` that computes a value per node. The twist is that evaluating
an expression can itself produce steps: ``input()`` records a prompt step and
a call to a user function runs a whole body. To keep steps in execution order
without materialising them, evaluation is a generator:

    value = yield from evaluator.evaluate(node)

``visit_*`` methods for leaf nodes return plain values; methods whose
children may yield are generators. ``evaluate`` accepts both.

Anything the language does not support evaluates to ``None`` rather than
raising, and unknown callees are not evaluated at all, so they have no side
effects.
"""

import ast
import inspect
import logging
import re
from typing import TYPE_CHECKING, Any, Dict, Generator, List, Optional

from .recorder import COMPARE_LEFT_COLOR, COMPARE_RIGHT_COLOR, SET_COLOR, Step
from .values import (
    MAX_SEQUENCE_LEN,
    binary_op,
    bounded,
    compare,
    format_value,
    is_number,
    item_at,
    make_range,
    normalize_index,
    slice_of,
    sort_key,
    to_index,
    to_number,
)

if TYPE_CHECKING:
    from .executor import Executor

logger = logging.getLogger(__name__)

Evaluation = Generator[Step, None, Any]

BINARY_OPERATORS = {
    ast.Add: "+",
    ast.Sub: "-",
    ast.Mult: "*",
    ast.Div: "/",
    ast.FloorDiv: "//",
    ast.Mod: "%",
    ast.Pow: "**",
}

COMPARE_OPERATORS = {
    ast.Eq: "==",
    ast.NotEq: "!=",
    ast.Lt: "<",
    ast.LtE: "<=",
    ast.Gt: ">",
    ast.GtE: ">=",
    ast.In: "in",
    ast.NotIn: "not in",
    ast.Is: "is",
    ast.IsNot: "is not",
}

BUILTINS = frozenset(
    ["len", "range", "min", "max", "abs", "sorted", "list", "int", "float", "str", "sum", "input", "enumerate", "zip"]
)

LIST_METHODS = frozenset(["append", "pop"])

# width and precision digits in an f-string format spec
_SPEC_NUMBER = re.compile(r"\d+")

# spellings accepted for the literal keywords when no variable shadows them
_LITERAL_NAMES: Dict[str, Any] = {"true": True, "false": False, "null": None}


class ExpressionEvaluator(ast.NodeVisitor):
    """Evaluate expression nodes against an executor's environment.

    Args:
        executor: the owning ``Executor``; supplies the environment, the step
            recorder, input handling and user function calls.
    """

    def __init__(self, executor: "Executor"):
        self.executor = executor
        self.env = executor.env
        self.recorder = executor.recorder

    def evaluate(self, node: ast.AST) -> Evaluation:
        result = self.visit(node)
        if inspect.isgenerator(result):
            result = yield from result
        return result

    def evaluate_all(self, nodes: List[ast.AST]) -> Evaluation:
        values = []
        for node in nodes:
            values.append((yield from self.evaluate(node)))
        return values

    def generic_visit(self, node):
        logger.debug("unsupported expression %s evaluates to None", type(node).__name__)
        return None

    def visit_Constant(self, node):
        if isinstance(node.value, (bool, int, float, str)) or node.value is None:
            return node.value
        return None

    def visit_Name(self, node):
        if node.id in self.env:
            return self.env.get(node.id)
        return _LITERAL_NAMES.get(node.id)

    def visit_List(self, node):
        return (yield from self.evaluate_all(node.elts))

    def visit_Tuple(self, node):
        return (yield from self.evaluate_all(node.elts))

    def visit_UnaryOp(self, node):
        operand = yield from self.evaluate(node.operand)
        if isinstance(node.op, ast.Not):
            return not operand
        if not is_number(operand):
            return None
        if isinstance(node.op, ast.USub):
            return -operand
        if isinstance(node.op, ast.UAdd):
            return +operand
        return None

    def visit_BinOp(self, node):
        op = BINARY_OPERATORS.get(type(node.op))
        left = yield from self.evaluate(node.left)
        right = yield from self.evaluate(node.right)
        if op is None:
            return None
        return binary_op(op, left, right)

    def visit_BoolOp(self, node):
        # short-circuit: operands after the deciding one are never evaluated
        value = None
        for operand in node.values:
            value = yield from self.evaluate(operand)
            if isinstance(node.op, ast.And) and not value:
                return value
            if isinstance(node.op, ast.Or) and value:
                return value
        return value

    def visit_IfExp(self, node):
        condition = yield from self.evaluate(node.test)
        branch = node.body if condition else node.orelse
        return (yield from self.evaluate(branch))

    def visit_Compare(self, node):
        left = yield from self._compared_operand(node.left, COMPARE_LEFT_COLOR)
        for op, comparator in zip(node.ops, node.comparators):
            right = yield from self._compared_operand(comparator, COMPARE_RIGHT_COLOR)
            if not compare(COMPARE_OPERATORS[type(op)], left, right):
                return False
            left = right
        return True

    def _compared_operand(self, node, color):
        """Evaluate a comparison operand, highlighting ``name[index]`` reads."""
        if not (
            isinstance(node, ast.Subscript)
            and isinstance(node.value, ast.Name)
            and not isinstance(node.slice, ast.Slice)
        ):
            return (yield from self.evaluate(node))
        container = yield from self.evaluate(node.value)
        index = to_index((yield from self.evaluate(node.slice)))
        if isinstance(container, list):
            position = normalize_index(container, index)
            if position is not None:
                self.recorder.highlight(node.value.id, position, color, ast.unparse(node.slice))
        return item_at(container, index)

    def visit_Subscript(self, node):
        container = yield from self.evaluate(node.value)
        if isinstance(node.slice, ast.Slice):
            bounds = []
            for bound in (node.slice.lower, node.slice.upper, node.slice.step):
                bounds.append(None if bound is None else (yield from self.evaluate(bound)))
            return slice_of(container, *bounds)
        index = yield from self.evaluate(node.slice)
        return item_at(container, to_index(index))

    def visit_JoinedStr(self, node):
        parts = []
        for piece in node.values:
            if isinstance(piece, ast.Constant):
                parts.append(str(piece.value))
            elif isinstance(piece, ast.FormattedValue):
                value = yield from self.evaluate(piece.value)
                spec = ""
                if piece.format_spec is not None:
                    spec = yield from self.evaluate(piece.format_spec)
                field = _format_field(value, piece.conversion, spec)
                if field is None:
                    return None
                parts.append(field)
        return bounded("".join(parts))

    def visit_Call(self, node):
        func = node.func
        if isinstance(func, ast.Attribute):
            return (yield from self._call_method(node))
        if not isinstance(func, ast.Name):
            return None
        fdef = self.env.functions.get(func.id)
        if fdef is None and func.id not in BUILTINS:
            logger.debug("call to unknown function %s evaluates to None", func.id)
            return None
        args = yield from self.evaluate_all(node.args)
        if fdef is not None:
            return (yield from self.executor.call_function(fdef, args))
        if func.id == "input":
            return (yield from self._input(args))
        keywords = {}
        for keyword in node.keywords:
            if keyword.arg is not None:
                keywords[keyword.arg] = yield from self.evaluate(keyword.value)
        return _call_builtin(func.id, args, keywords)

    def _call_method(self, node):
        func = node.func
        if not isinstance(func.value, ast.Name) or func.attr not in LIST_METHODS:
            return None
        name = func.value.id
        target = self.env.get(name)
        if not isinstance(target, list):
            return None
        args = yield from self.evaluate_all(node.args)
        if func.attr == "append":
            if len(target) >= MAX_SEQUENCE_LEN:
                return None
            target.append(args[0] if args else None)
            self.recorder.highlight(name, len(target) - 1, SET_COLOR, "append")
            self.env.mark_changed(name)
            return None
        position = normalize_index(target, to_index(args[0]) if args else -1)
        if position is None:
            return None
        self.env.mark_changed(name)
        return target.pop(position)

    def _input(self, args):
        executor = self.executor
        prompt = format_value(args[0]) if args else ""
        if prompt:
            executor.emit(prompt)
        yield self.recorder.capture(executor.current_line, "Prompting for input")
        value = executor.next_input()
        executor.emit(value)
        return value


def _format_field(value: Any, conversion: int, spec: Any) -> Optional[str]:
    """Format one f-string field, or None for a spec that is refused."""
    if conversion == ord("r"):
        return format_value(value, nested=True)
    if spec is None:
        return None
    for number in _SPEC_NUMBER.findall(spec):
        digits = number.lstrip("0")
        if len(digits) > len(str(MAX_SEQUENCE_LEN)) or int(digits or 0) > MAX_SEQUENCE_LEN:
            return None
    if spec:
        try:
            return format(value, spec)
        except (TypeError, ValueError):
            return format_value(value)
    return format_value(value)


def _call_builtin(name: str, args: List[Any], keywords: Dict[str, Any]) -> Any:
    first = args[0] if args else None
    if name == "len":
        return len(first) if isinstance(first, (list, str)) else 0
    if name == "range":
        return make_range(args)
    if name in ("min", "max"):
        items = first if len(args) == 1 and isinstance(first, list) else args
        if not items:
            return None
        try:
            return min(items) if name == "min" else max(items)
        except TypeError:
            return None
    if name == "abs":
        return abs(first) if is_number(first) else 0
    if name == "sorted":
        if isinstance(first, str):
            first = list(first)
        if not isinstance(first, list):
            return first
        return sorted(first, key=sort_key, reverse=bool(keywords.get("reverse")))
    if name == "list":
        if isinstance(first, (list, str)):
            return list(first)
        return []
    if name == "int":
        number = to_number(first)
        try:
            return int(number) if number is not None else 0
        except (OverflowError, ValueError):
            return 0
    if name == "float":
        number = to_number(first)
        return float(number) if number is not None else 0.0
    if name == "str":
        return bounded(format_value(first)) if args else ""
    if name == "sum":
        if not isinstance(first, list):
            return 0
        return sum(item for item in first if is_number(item))
    if name in ("enumerate", "zip"):
        # passthrough: the visualizer only needs the underlying sequence
        return first
    return None
