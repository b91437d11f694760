"""Expression evaluation: precedence, numeric policy, built-ins, short-circuit."""

import pytest

from backend.minipy.interpreter import interpret


def _printed(expr):
    res = interpret(f"print({expr})")
    assert len(res.output) == 1, res
    return res.output[0]


@pytest.mark.parametrize(
    "expr,expected",
    [
        ("2 + 3 * 4", "14"),
        ("(2 + 3) * 4", "20"),
        ("10 // 3", "3"),
        ("7 % 2", "1"),
        ("10 - 2 - 3", "5"),
        ("2 ** 10", "1024"),
        ("-7 // 2", "-4"),
        ("7 / 2", "3.5"),
        ("6 / 2", "3.0"),
        ("1 / 0", "0"),
        ("5 % 0", "0"),
        ("not True or True", "True"),
        ("1 < 2 < 3", "True"),
        ("3 > 2 > 5", "False"),
        ("3 in [1, 2, 3]", "True"),
        ('"b" not in "abc"', "False"),
    ],
)
def test_operators(expr, expected):
    assert _printed(expr) == expected


@pytest.mark.parametrize(
    "expr,expected",
    [
        ('"a" + 1', "a1"),
        ("[1, 2] + [3]", "[1, 2, 3]"),
        ("[0] * 3", "[0, 0, 0]"),
        ('"-" * 3', "---"),
        ('"5" == 5', "True"),
        ('"5" > 3', "True"),
        ('"abc" < 3', "False"),
        ("undefined_name", "None"),
        ("true", "True"),
        ("null", "None"),
        ('["a", "b"]', "['a', 'b']"),
        ("[1, None, False]", "[1, None, False]"),
        ('"x" * 20000', "None"),
        ("1e308 * 10", "None"),
        ("-1e308 - 1e308", "None"),
        ("2.0 ** 5000", "None"),
        ('float("inf") * 2', "inf"),
    ],
)
def test_lenient_values(expr, expected):
    assert _printed(expr) == expected


@pytest.mark.parametrize(
    "expr,expected",
    [
        ("len([1, 2, 3])", "3"),
        ('len("hey")', "3"),
        ("min([4, 2, 9])", "2"),
        ("max(4, 2, 9)", "9"),
        ("min([])", "None"),
        ("abs(-4)", "4"),
        ("sorted([3, 1, 2])", "[1, 2, 3]"),
        ("sorted([3, 1, 2], reverse=True)", "[3, 2, 1]"),
        ("list(range(3))", "[0, 1, 2]"),
        ('list("ab")', "['a', 'b']"),
        ('int("42") + 1', "43"),
        ('int("abc")', "0"),
        ("int(3.9)", "3"),
        ('float("2.5")', "2.5"),
        ('str(5) + "!"', "5!"),
        ("sum([1, 2, 3])", "6"),
        ("enumerate([7])", "[7]"),
        ("zip([7])", "[7]"),
    ],
)
def test_builtins(expr, expected):
    assert _printed(expr) == expected


def test_subscripts_and_slices():
    code = "a = [1, 2, 3, 4]\nprint(a[-1], a[1:3], a[::2], a[10], 'hey'[0])"
    assert interpret(code).output == ["4 [2, 3] [1, 3] None h"]


def test_fstrings():
    code = 'n = 3\nname = "bo"\nprint(f"{name} has {n + 1} items {3.14159:.2f} {name!r}")'
    assert interpret(code).output == ["bo has 4 items 3.14 'bo'"]


def test_conditional_expression():
    assert _printed('"yes" if 2 > 1 else "no"') == "yes"


def test_and_or_return_operands():
    assert _printed('0 or "x"') == "x"
    assert _printed("1 and 0") == "0"


def test_short_circuit_skips_calls():
    code = (
        "def X():\n"
        '    print("side effect")\n'
        "    return True\n"
        "flag = False and X()\n"
        "other = True or X()\n"
        "print(flag, other)\n"
    )
    res = interpret(code)
    assert res.output == ["False True"]
    assert all(s.call_stack == ["main"] for s in res.steps)
    assert [s.annotation for s in res.steps] == ["Assigning flag = False", "Assigning other = True", "Output"]


def test_short_circuit_skips_input():
    res = interpret('x = False and input("never")\nprint(x)')
    assert res.awaiting_input is False
    assert res.output == ["False"]


def test_user_function_shadows_builtin():
    code = "def len(x):\n    return 42\nprint(len([1]))"
    assert interpret(code).output == ["42"]


def test_fstring_width_is_bounded():
    assert interpret('s = f"{1:>5}"\nprint(s)').output == ["    1"]
    assert interpret('s = f"{1:>20000}"\nprint(s)').output == ["None"]
    assert interpret('s = f"{1:>1000000000}"\nprint(s)').output == ["None"]
    code = 'w = 30000\ns = f"{1:>{w}}"\nprint(s)'
    assert interpret(code).output == ["None"]


def test_fstring_joined_length_is_bounded():
    code = 'a = "x" * 6000\ns = f"{a}{a}"\nprint(len(a), s)'
    assert interpret(code).output == ["6000 None"]
