"""Variable storage for one interpretation run.

An ``Environment`` is a stack of call frames. The bottom frame is ``main``
(module globals); every user function call pushes a frame named after the
function and pops it on return. Name lookup tries the innermost frame and
then ``main``. Lists live in the frames as ordinary Python lists, so a list
passed to a function is the same object the caller holds and in-place
mutations are visible on both sides.

The environment also tracks which names were assigned since the last
recorded step; the step recorder reads and clears that set.
"""

import ast
from dataclasses import dataclass, field
from typing import Any, Dict, List, Set, Tuple


@dataclass(frozen=True)
class FunctionDef:
    """A user-defined function harvested from the source.

    ``start`` and ``end`` are 0-based line indices of the ``def`` line and
    the last body line.
    """

    name: str
    params: Tuple[str, ...]
    body: Tuple[ast.stmt, ...]
    start: int
    end: int

    @classmethod
    def from_node(cls, node: ast.FunctionDef) -> "FunctionDef":
        arguments = list(node.args.posonlyargs) + list(node.args.args)
        return cls(
            name=node.name,
            params=tuple(arg.arg for arg in arguments),
            body=tuple(node.body),
            start=node.lineno - 1,
            end=(node.end_lineno or node.lineno) - 1,
        )


@dataclass
class Frame:
    name: str
    bindings: Dict[str, Any] = field(default_factory=dict)


class Environment:
    def __init__(self):
        self.frames: List[Frame] = [Frame("main")]
        self.functions: Dict[str, FunctionDef] = {}
        self.changed: Set[str] = set()

    @property
    def globals(self) -> Frame:
        return self.frames[0]

    @property
    def current(self) -> Frame:
        return self.frames[-1]

    @property
    def depth(self) -> int:
        """Number of active user function calls."""
        return len(self.frames) - 1

    def __contains__(self, name: str) -> bool:
        return name in self.current.bindings or name in self.globals.bindings

    def get(self, name: str, default: Any = None) -> Any:
        if name in self.current.bindings:
            return self.current.bindings[name]
        return self.globals.bindings.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self.current.bindings[name] = value
        self.changed.add(name)

    def mark_changed(self, name: str) -> None:
        self.changed.add(name)

    def clear_changed(self) -> None:
        self.changed.clear()

    def declare_function(self, fdef: FunctionDef) -> None:
        self.functions[fdef.name] = fdef

    def push_frame(self, name: str) -> Frame:
        frame = Frame(name)
        self.frames.append(frame)
        return frame

    def pop_frame(self) -> Frame:
        if len(self.frames) == 1:
            raise RuntimeError("cannot pop the main frame")
        return self.frames.pop()

    def call_stack(self) -> List[str]:
        return [frame.name for frame in self.frames]

    def visible(self) -> Dict[str, Any]:
        """Bindings a statement in the current frame can see, ``main`` first."""
        merged = dict(self.globals.bindings)
        if self.current is not self.globals:
            merged.update(self.current.bindings)
        return merged
