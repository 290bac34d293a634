"""Pointing poller errors back at the code that started waiting.

By the time a timeout fires, the stack only holds event loop internals. The poller captures the
caller's frame up front and copies it onto the error it eventually raises. Where that frame is
available depends on the runtime, so both halves are best-effort.
"""

import traceback
from traceback import FrameSummary


def capture_origin_frame(skip: int = 0) -> FrameSummary | None:
    """Return the frame that called the function calling this one, or None if there is no stack.

    skip moves further out, for callers that wrap the public entry point.
    """
    # innermost last: [..., origin, entry point, capture_origin_frame]
    depth = skip + 3
    stack = traceback.extract_stack(limit=depth)
    if len(stack) < depth:
        return None
    return stack[0]


def relocate_stack_trace(error: BaseException, origin_frame: FrameSummary | None) -> None:
    """Attach origin_frame to error, both as an attribute and as a note shown in tracebacks."""
    if origin_frame is None:
        return
    setattr(error, "origin_frame", origin_frame)
    error.add_note(f"Waited for at {origin_frame.filename}:{origin_frame.lineno} in {origin_frame.name}")
