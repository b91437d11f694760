"""The lazy step stream: seek, cache and flags."""

import pytest

from backend.minipy.interpreter import Interpreter

THREE_PRINTS = 'print("a")\nprint("b")\nprint("c")'


def test_indexing_pulls_only_what_is_needed():
    stream = Interpreter().stream(THREE_PRINTS)
    first = stream[0]
    assert first.output == ["a"]
    assert stream.output == ["a"]
    assert stream.finished is False
    assert stream[1].output == ["a", "b"]
    assert stream.output == ["a", "b"]


def test_iteration_uses_cache_and_drains():
    stream = Interpreter().stream(THREE_PRINTS)
    stream[1]
    steps = list(stream)
    assert [s.output[-1] for s in steps] == ["a", "b", "c"]
    assert stream.finished is True
    assert len(stream) == 3
    assert stream[-1] is steps[-1]


def test_index_past_end_raises():
    stream = Interpreter().stream(THREE_PRINTS)
    with pytest.raises(IndexError):
        stream[3]


def test_stream_matches_eager_result():
    it = Interpreter()
    code = "x = 0\nfor i in range(4):\n    x += i\nprint(x)"
    assert it.stream(code).materialize() == it.run(code).steps


def test_stream_stops_at_ceiling_and_closes_frames():
    it = Interpreter()
    it.max_steps = 3
    stream = it.stream("def f():\n    while True:\n        x = 1\nf()")
    steps = stream.materialize()
    assert len(steps) == 3
    assert stream.truncated is True
    assert steps[-1].call_stack == ["main", "f"]


def test_stream_surfaces_syntax_errors():
    stream = Interpreter().stream("if :")
    with pytest.raises(SyntaxError):
        stream.materialize()
