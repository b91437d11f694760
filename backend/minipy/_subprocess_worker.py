"""Subprocess worker that traces one program.

Executed as ``python -m backend.minipy._subprocess_worker``. It reads a single
JSON object from stdin with shape {"code": "...", "inputs": [...],
"settings": {...}}, runs the MiniPy interpreter with the given limits and
writes the trace result as JSON to stdout. A payload that cannot be decoded
is reported as {"error": "bad_payload: ..."} with exit status 1.

The parent enforces wall-clock and resource limits; the worker only applies
the interpreter limits it is given.
"""

import json
import sys
from typing import Any, Dict

from backend.minipy.interpreter import Interpreter

LIMIT_KEYS = ("max_steps", "max_loop", "max_iterations", "max_call_depth", "max_output_chars")


def trace_payload(payload: Dict[str, Any]) -> str:
    """Run the interpreter for a decoded payload; returns the result JSON."""
    it = Interpreter()
    settings = payload.get("settings") or {}
    for key in LIMIT_KEYS:
        if key in settings:
            setattr(it, key, int(settings[key]))
    result = it.run(str(payload.get("code", "")), payload.get("inputs") or [])
    return result.model_dump_json()


def main() -> None:
    raw = sys.stdin.read()
    try:
        payload = json.loads(raw)
        if not isinstance(payload, dict):
            raise ValueError("payload must be a JSON object")
    except ValueError as e:
        # json.JSONDecodeError is a ValueError
        print(json.dumps({"error": f"bad_payload: {e}"}))
        sys.exit(1)

    print(trace_payload(payload))


if __name__ == "__main__":
    main()
