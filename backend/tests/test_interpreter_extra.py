"""Extra interpreter tests: control flow steps, highlights and skipped syntax."""

from backend.minipy.interpreter import interpret
from backend.minipy.recorder import COMPARE_LEFT_COLOR, COMPARE_RIGHT_COLOR, SWAP_COLOR

IF_CHAIN = (
    "x = {value}\n"
    "if x < 3:\n"
    '    print("small")\n'
    "elif x < 10:\n"
    '    print("medium")\n'
    "else:\n"
    '    print("large")\n'
)


def test_elif_branch_steps():
    res = interpret(IF_CHAIN.format(value=5))
    assert [(s.line, s.annotation) for s in res.steps] == [
        (0, "Assigning x = 5"),
        (1, "Condition is false"),
        (3, "Condition is true"),
        (4, "Output"),
    ]
    assert res.output == ["medium"]


def test_else_branch_step_on_else_line():
    res = interpret(IF_CHAIN.format(value=50))
    assert [(s.line, s.annotation) for s in res.steps] == [
        (0, "Assigning x = 50"),
        (1, "Condition is false"),
        (3, "Condition is false"),
        (5, "Else branch"),
        (6, "Output"),
    ]


def test_nested_if_inside_else_is_not_elif():
    code = "x = 1\nif x > 5:\n    y = 1\nelse:\n    if x > 0:\n        y = 2\nprint(y)"
    res = interpret(code)
    assert [s.annotation for s in res.steps] == [
        "Assigning x = 1",
        "Condition is false",
        "Else branch",
        "Condition is true",
        "Assigning y = 2",
        "Output",
    ]


def test_while_loop():
    code = "i = 0\nwhile i < 3:\n    i += 1\nprint(i)"
    res = interpret(code)
    assert [s.annotation for s in res.steps] == ["Assigning i = 0", "i += 1", "i += 1", "i += 1", "Output"]
    assert res.output == ["3"]


def test_descending_range_and_zero_step():
    assert interpret("for i in range(3, 0, -1):\n    print(i)").output == ["3", "2", "1"]
    assert interpret("for i in range(0, 3, 0):\n    print(i)").output == ["0", "1", "2"]


def test_for_over_list_and_string():
    assert interpret('for x in [4, 5]:\n    print(x)').output == ["4", "5"]
    assert interpret('for ch in "ab":\n    print(ch)').output == ["a", "b"]


def test_for_over_list_sees_appends():
    code = (
        "items = [1, 2]\n"
        "for x in items:\n"
        "    if x == 1:\n"
        "        items.append(3)\n"
        "print(items)\n"
    )
    res = interpret(code)
    assert res.output == ["[1, 2, 3]"]
    conditions = [s for s in res.steps if s.annotation.startswith("Condition")]
    assert len(conditions) == 3


def test_break_and_continue():
    code = "total = 0\nfor i in range(10):\n    if i == 3:\n        break\n    total += i\nprint(total)"
    res = interpret(code)
    assert res.output == ["3"]
    assert "Breaking out of loop" in [s.annotation for s in res.steps]
    code = "total = 0\nfor i in range(5):\n    if i % 2 == 0:\n        continue\n    total += i\nprint(total)"
    assert interpret(code).output == ["4"]


def test_loop_else_runs_without_break():
    code = "for i in range(2):\n    x = i\nelse:\n    print('done')"
    assert interpret(code).output == ["done"]


def test_pass_records_a_step():
    res = interpret("pass")
    assert [s.annotation for s in res.steps] == ["No operation"]


def test_comparison_and_swap_highlights():
    code = (
        "arr = [4, 2]\n"
        "j = 0\n"
        "if arr[j] > arr[j + 1]:\n"
        "    arr[j], arr[j + 1] = arr[j + 1], arr[j]\n"
    )
    res = interpret(code)
    condition, swap = res.steps[2], res.steps[3]
    assert [h.model_dump() for h in condition.containers[0].highlights] == [
        {"index": 0, "color": COMPARE_LEFT_COLOR, "label": "j"},
        {"index": 1, "color": COMPARE_RIGHT_COLOR, "label": "j + 1"},
    ]
    assert swap.annotation == "Swapping elements"
    assert swap.containers[0].values == [2, 4]
    assert [(h.index, h.color, h.label) for h in swap.containers[0].highlights] == [
        (0, SWAP_COLOR, "swap"),
        (1, SWAP_COLOR, "swap"),
    ]


def test_highlights_last_one_step():
    res = interpret("arr = [1, 2]\narr[0] = 7\nx = 1")
    assert len(res.steps[1].containers[0].highlights) == 1
    assert res.steps[2].containers[0].highlights == []


def test_containers_skip_empty_and_mixed_lists():
    res = interpret('a = []\nb = [1, [2]]\nc = [True]\nd = ["x", 1.5]')
    assert [c.name for c in res.steps[-1].containers] == ["d"]


def test_augmented_assignment_forms():
    code = "x = 7\nx //= 2\nx **= 2\ns = 'a'\ns += 'b'\narr = [1, 2]\narr[1] *= 5\nprint(x, s, arr)"
    res = interpret(code)
    assert res.output == ["9 ab [1, 10]"]
    assert "arr[1] *= 5" in [s.annotation for s in res.steps]


def test_list_plus_equals_extends_in_place():
    assert interpret("a = [1]\nb = a\nb += [2]\nprint(a)").output == ["[1, 2]"]


def test_list_methods_record_steps():
    code = "stack = []\nstack.append(4)\nstack.append(6)\nstack.pop()\nprint(stack)"
    res = interpret(code)
    assert [s.annotation for s in res.steps] == [
        "Assigning stack = []",
        "stack.append(4)",
        "stack.append(6)",
        "stack.pop()",
        "Output",
    ]
    assert [(h.index, h.label) for h in res.steps[2].containers[0].highlights] == [(1, "append")]
    assert res.output == ["[4]"]


def test_out_of_range_write_is_ignored():
    res = interpret("arr = [1]\narr[5] = 2\nprint(arr)")
    assert res.steps[1].annotation == "arr[5] = 2"
    assert res.output == ["[1]"]


def test_unsupported_statements_are_skipped():
    code = "import math\nx = 1\nclass A:\n    pass\na, b = 1, 2\nprint(x)"
    res = interpret(code)
    assert [s.annotation for s in res.steps] == ["Assigning x = 1", "Output"]
    assert res.output == ["1"]


def test_nested_function_definition_declared_when_reached():
    code = "def outer():\n    def inner():\n        return 4\n    return inner()\nprint(outer())"
    assert interpret(code).output == ["4"]


def test_print_separator_and_newlines():
    assert interpret('print(1, 2, sep="-")').output == ["1-2"]
    assert interpret('print("a\\nb")').output == ["a", "b"]
    assert interpret("print()").output == [""]


def test_print_end_continues_the_line():
    res = interpret('print("a", end="")\nprint("b", end="-")\nprint("c")\nprint("d")')
    assert res.output == ["ab-c", "d"]
    assert res.steps[0].output == ["a"]
    assert interpret('print("x", end="\\n\\n")\nprint("y")').output == ["x", "", "y"]


def test_input_echo_continues_an_open_line():
    res = interpret('print("Name:", end=" ")\nv = input()\nprint(v)', ["bo"])
    assert res.output == ["Name: bo", "bo"]
