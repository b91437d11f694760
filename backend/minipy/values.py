"""Value helpers for the MiniPy runtime.

Runtime values are ordinary Python objects: ``int`` and ``float`` numbers,
``str``, ``bool``, ``list`` and ``None``. Lists are shared by reference, so two
names bound to the same list observe each other's mutations.

The helpers here never raise for bad operand types. Anything the language
does not define evaluates to ``None`` (the Null value), division and modulo
by zero give ``0``, and results that would grow without bound (huge strings,
lists or integers) are refused with ``None`` so a short program cannot
exhaust the host.
"""

import math
import operator
from typing import Any, Iterator, List, Optional, Tuple, Union

Value = Union[int, float, str, bool, list, None]

# Longest string or list an operation may produce.
MAX_SEQUENCE_LEN = 10_000
# Largest integer (in bits) multiplication and power may produce.
MAX_INT_BITS = 4096

_ORDERING = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float))


def type_tag(value: Any) -> str:
    """Short type name shown next to a variable in a Step."""
    if value is None:
        return "None"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "str"
    if isinstance(value, list):
        return "list"
    return type(value).__name__


def format_value(value: Any, nested: bool = False) -> str:
    """Render a value the way ``print`` shows it.

    Strings print raw at the top level and quoted inside lists, matching
    what Python itself prints for ``print("a")`` and ``print(["a"])``.
    Rendering stops after ``MAX_SEQUENCE_LEN`` characters and the text ends
    with ``...``, so a list that shares one big row many times is never
    walked in full.
    """
    pieces: List[str] = []
    size = 0
    for piece in _pieces(value, nested, set()):
        pieces.append(piece)
        size += len(piece)
        if size > MAX_SEQUENCE_LEN:
            return "".join(pieces)[:MAX_SEQUENCE_LEN] + "..."
    return "".join(pieces)


def _pieces(value: Any, nested: bool, seen: set) -> Iterator[str]:
    if isinstance(value, list):
        if id(value) in seen:
            yield "[...]"
            return
        seen.add(id(value))
        yield "["
        for position, item in enumerate(value):
            if position:
                yield ", "
            yield from _pieces(item, True, seen)
        yield "]"
        seen.discard(id(value))
        return
    if value is None:
        yield "None"
    elif isinstance(value, bool):
        yield "True" if value else "False"
    elif isinstance(value, str):
        yield repr(value) if nested else value
    else:
        yield str(value)


def to_index(value: Any) -> Optional[int]:
    """Coerce a value used as an index or range bound, or None if it cannot be."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def to_number(value: Any) -> Optional[Union[int, float]]:
    if is_number(value):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return None
    return None


def normalize_index(sequence: Any, index: Optional[int]) -> Optional[int]:
    """Resolve a possibly negative index against a list or string."""
    if index is None or not isinstance(sequence, (list, str)):
        return None
    if index < 0:
        index += len(sequence)
    if 0 <= index < len(sequence):
        return index
    return None


def item_at(sequence: Any, index: Optional[int]) -> Value:
    position = normalize_index(sequence, index)
    if position is None:
        return None
    return sequence[position]


def slice_of(sequence: Any, lower: Any, upper: Any, step: Any) -> Value:
    if not isinstance(sequence, (list, str)):
        return None
    bounds = []
    for bound in (lower, upper, step):
        bounds.append(None if bound is None else to_index(bound))
    if bounds[2] == 0:
        return None
    return sequence[bounds[0]:bounds[1]:bounds[2]]


def sequence_size(sequence: Union[str, list], limit: int = MAX_SEQUENCE_LEN) -> int:
    """Length of a string, or element count of a list including nested lists.

    A list nested several times counts once per occurrence. Counting stops
    as soon as the total passes ``limit``.
    """
    if isinstance(sequence, str):
        return len(sequence)
    total = 0
    pending = [sequence]
    while pending and total <= limit:
        current = pending.pop()
        total += len(current)
        pending.extend(item for item in current if isinstance(item, list))
    return total


def bounded(sequence: Union[str, list]) -> Value:
    """Return ``sequence``, or None when it is larger than the runtime allows."""
    if sequence_size(sequence) > MAX_SEQUENCE_LEN:
        return None
    return sequence


def _repeat(sequence: Union[str, list], times: int) -> Value:
    if sequence_size(sequence) * max(times, 0) > MAX_SEQUENCE_LEN:
        return None
    return sequence * times


def _multiply(left, right) -> Value:
    if isinstance(left, int) and isinstance(right, int):
        if left.bit_length() + right.bit_length() > MAX_INT_BITS:
            return None
    return left * right


def _power(base, exponent) -> Value:
    if isinstance(base, int) and isinstance(exponent, int) and exponent > 0:
        if max(base.bit_length(), 1) * exponent > MAX_INT_BITS:
            return None
    try:
        result = base ** exponent
    except (OverflowError, ZeroDivisionError):
        return None
    if isinstance(result, complex):
        return None
    return result


def binary_op(op: str, left: Any, right: Any) -> Value:
    """Apply an arithmetic operator with the runtime's lenient rules.

    Args:
        op: one of ``+ - * / // % **``.
        left, right: operand values.

    Returns the result, or None when the operands do not support ``op`` or
    the result overflows.
    """
    numeric = is_number(left) and is_number(right)
    if op == "+" and not numeric:
        if isinstance(left, list) and isinstance(right, list):
            return bounded(left + right)
        if isinstance(left, str) or isinstance(right, str):
            return bounded(format_value(left) + format_value(right))
        return None
    if op == "*" and not numeric:
        if isinstance(left, (str, list)) and isinstance(right, int):
            return _repeat(left, right)
        if isinstance(right, (str, list)) and isinstance(left, int):
            return _repeat(right, left)
        return None
    if not numeric:
        return None
    try:
        result = _arithmetic(op, left, right)
    except OverflowError:
        return None
    # a float that overflowed to infinity is refused; explicit infinities pass
    if isinstance(result, float) and math.isinf(result) and not (_is_inf(left) or _is_inf(right)):
        return None
    return result


def _arithmetic(op: str, left, right):
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return _multiply(left, right)
    if op == "**":
        return _power(left, right)
    # division-like operators share the zero policy
    if right == 0:
        return 0
    if op == "/":
        return left / right
    if op == "//":
        return left // right
    if op == "%":
        return left % right
    return None


def _is_inf(value) -> bool:
    return isinstance(value, float) and math.isinf(value)


def _as_numbers(left: Any, right: Any) -> Optional[Tuple[Any, Any]]:
    if is_number(left) and is_number(right):
        return left, right
    # a numeric string compares against a number by value
    if is_number(left) and isinstance(right, str):
        converted = to_number(right)
        return (left, converted) if converted is not None else None
    if isinstance(left, str) and is_number(right):
        converted = to_number(left)
        return (converted, right) if converted is not None else None
    return None


def _contains(container: Any, item: Any) -> bool:
    if isinstance(container, list):
        return any(compare("==", element, item) for element in container)
    if isinstance(container, str) and isinstance(item, str):
        return item in container
    return False


def compare(op: str, left: Any, right: Any) -> bool:
    """Evaluate one comparison operator; never raises."""
    if op == "in":
        return _contains(right, left)
    if op == "not in":
        return not _contains(right, left)
    if op in ("is", "is not"):
        if left is None or right is None or isinstance(left, (bool, list)):
            same = left is right
        else:
            same = left == right
        return same if op == "is" else not same
    numbers = _as_numbers(left, right)
    if numbers is not None:
        left, right = numbers
        if isinstance(left, float) and math.isnan(left):
            return op == "!="
    if op == "==":
        return left == right
    if op == "!=":
        return left != right
    try:
        return bool(_ORDERING[op](left, right))
    except (KeyError, TypeError):
        return False


def sort_key(value: Any):
    # numbers first in numeric order, then everything else by its text
    if is_number(value):
        return (0, value, "")
    return (1, 0, format_value(value))


def flat_scalars(value: Any) -> bool:
    """True for non-empty lists holding only numbers and strings."""
    if not isinstance(value, list) or not value:
        return False
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (int, float, str)):
            return False
    return True


def make_range(args: List[Any]) -> List[int]:
    """Materialise ``range(...)`` for use as a value (bounded)."""
    start, stop, step = range_bounds(args)
    result = []
    for number in range(start, stop, step):
        if len(result) >= MAX_SEQUENCE_LEN:
            break
        result.append(number)
    return result


def range_bounds(args: List[Any]) -> Tuple[int, int, int]:
    bounds = [to_index(arg) or 0 for arg in args[:3]]
    if not bounds:
        return 0, 0, 1
    if len(bounds) == 1:
        return 0, bounds[0], 1
    step = bounds[2] if len(bounds) == 3 else 1
    # a zero step would never advance; treat it as 1
    return bounds[0], bounds[1], step or 1
