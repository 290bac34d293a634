from traceback import FrameSummary

from imbue.condition_poller.errors import WaitForTimeoutError
from imbue.condition_poller.stack_trace import capture_origin_frame
from imbue.condition_poller.stack_trace import relocate_stack_trace


def _entry_point() -> FrameSummary | None:
    return capture_origin_frame()


def _wrapper_around_entry_point() -> FrameSummary | None:
    return _entry_point_that_skips_one()


def _entry_point_that_skips_one() -> FrameSummary | None:
    return capture_origin_frame(skip=1)


def test_capture_returns_the_caller_of_the_entry_point() -> None:
    frame = _entry_point()

    assert frame is not None
    assert frame.name == "test_capture_returns_the_caller_of_the_entry_point"
    assert frame.filename == __file__


def test_capture_can_skip_wrapper_frames() -> None:
    frame = _wrapper_around_entry_point()

    assert frame is not None
    assert frame.name == "test_capture_can_skip_wrapper_frames"


def test_capture_returns_none_when_the_stack_is_too_shallow() -> None:
    assert capture_origin_frame(skip=100_000) is None


def test_relocate_copies_the_frame_and_adds_a_note() -> None:
    frame = FrameSummary("/src/app/checks.py", 42, "wait_for_upload", lookup_line=False)
    error = WaitForTimeoutError()

    relocate_stack_trace(error, frame)

    assert error.origin_frame is frame
    assert error.__notes__ == ["Waited for at /src/app/checks.py:42 in wait_for_upload"]


def test_relocate_without_a_frame_leaves_the_error_alone() -> None:
    error = WaitForTimeoutError()

    relocate_stack_trace(error, None)

    assert error.origin_frame is None
    assert getattr(error, "__notes__", None) is None
