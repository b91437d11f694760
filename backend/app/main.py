"""FastAPI application entrypoints for the MiniPy tracer.

This module exposes HTTP endpoints used by the visualizer frontend and tests.
Handlers stay small: each `/trace` request constructs a fresh `Interpreter`
so no state is shared between requests, applies server-side caps, and calls
the interpreter's public API. The module-level `interpreter` only holds the
server's ceilings; clients may lower limits but never raise them.
"""

import logging
import os
import time
from typing import Any, Dict, List, Optional

from fastapi import FastAPI
from pydantic import BaseModel

from ..minipy.examples import EXAMPLES, get_example
from ..minipy.interpreter import Interpreter
from ..minipy.trace import TraceResult

logger = logging.getLogger(__name__)

app = FastAPI(title="MiniPy Tracer API", version="0.1")

# server-side ceilings; tests and deployments may lower these
interpreter = Interpreter()

MAX_TIMEOUT_S = 5.0


def _cap_settings(settings: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Enforce server-side safe caps for runtime tunables.

    Clients may include a `settings` object with per-run tunables. The server
    does not trust these: every limit is clamped to the module-level
    `interpreter` ceilings. `use_subprocess` and `timeout_s` select isolated
    execution; the timeout is capped at `MAX_TIMEOUT_S`.

    Returns a dict with every limit key present.
    """
    safe = {
        "max_steps": interpreter.max_steps,
        "max_loop": interpreter.max_loop,
        "max_call_depth": interpreter.max_call_depth,
        "max_output_chars": interpreter.max_output_chars,
        "use_subprocess": False,
        "timeout_s": 2.0,
    }
    if not settings:
        return safe
    caps = dict(safe)
    # coerce and clamp numeric values to between 1 and the server's maximums
    caps["max_steps"] = max(1, min(int(settings.get("max_steps", safe["max_steps"])), safe["max_steps"]))
    caps["max_loop"] = max(1, min(int(settings.get("max_loop", safe["max_loop"])), safe["max_loop"]))
    caps["max_call_depth"] = max(1, min(int(settings.get("max_call_depth", safe["max_call_depth"])), safe["max_call_depth"]))
    caps["max_output_chars"] = max(1, min(int(settings.get("max_output_chars", safe["max_output_chars"])), safe["max_output_chars"]))
    caps["use_subprocess"] = bool(settings.get("use_subprocess", False))
    caps["timeout_s"] = min(float(settings.get("timeout_s", safe["timeout_s"])), MAX_TIMEOUT_S)
    return caps


@app.on_event("startup")
def startup():
    """FastAPI startup event: configure logging from MINIPY_LOG_LEVEL."""
    logging.basicConfig(level=os.environ.get("MINIPY_LOG_LEVEL", "WARNING").upper())


class TraceRequest(BaseModel):
    """Pydantic model for the `/trace` request body.

    Fields:
        code: program source.
        inputs: values already entered for `input()` calls, in order.
        settings: optional runtime tunables; capped server-side.
    """
    code: str
    inputs: Optional[List[str]] = None
    settings: Optional[Dict[str, Any]] = None


@app.post("/trace")
async def trace_code(req: TraceRequest):
    """Trace a program and return its steps.

    A fresh `Interpreter` is built per request with the capped limits. When
    `awaiting_input` comes back true the client asks the user for a value and
    posts the same code again with the value appended to `inputs`. Any
    unexpected exception becomes a SERVER_ERROR response with the same shape.
    """
    start = time.time()
    try:
        capped = _cap_settings(req.settings or {})
        it = Interpreter()
        it.max_steps = capped["max_steps"]
        it.max_loop = capped["max_loop"]
        it.max_call_depth = capped["max_call_depth"]
        it.max_output_chars = capped["max_output_chars"]
        if capped["use_subprocess"]:
            result, errors = it.run_isolated(req.code, req.inputs or [], timeout_s=capped["timeout_s"])
        else:
            result, errors = it.run(req.code, req.inputs or []), None
    except Exception as e:
        logger.exception("trace request failed")
        body = TraceResult().model_dump()
        body["duration_ms"] = int((time.time() - start) * 1000)
        body["errors"] = {"code": "SERVER_ERROR", "message": str(e)}
        return body
    body = result.model_dump()
    body["duration_ms"] = int((time.time() - start) * 1000)
    body["errors"] = errors
    return body


@app.get("/examples")
async def list_examples():
    return [{"id": example.id, "label": example.label} for example in EXAMPLES]


@app.get("/examples/{example_id}")
async def read_example(example_id: str):
    example = get_example(example_id)
    if not example:
        return {"error": "not found"}
    return {
        "id": example.id,
        "label": example.label,
        "code": example.code,
        "inputs": list(example.inputs),
        "expected_output": list(example.expected_output),
    }
