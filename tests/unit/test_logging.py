"""Unit tests for femtologging integration helpers."""

from __future__ import annotations

import pytest

from mirrorsync.logging import (
    configure_logging,
    log_error,
    log_exception,
    log_info,
    log_warning,
    normalize_log_level,
)


class _FakeLogger:
    """Collects log calls for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, object | None, bool]] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        self.calls.append((level, message, exc_info, stack_info))
        return message


@pytest.mark.parametrize(
    ("input_level", "expected_level", "expected_invalid"),
    [
        ("warning", "WARNING", False),
        (" debug ", "DEBUG", False),
        (None, "INFO", True),
        ("", "INFO", True),
        ("verbose", "INFO", True),
        ("trace", "INFO", True),
        ("Critical", "CRITICAL", False),
    ],
)
def test_normalize_log_level(
    input_level: str | None, expected_level: str, *, expected_invalid: bool
) -> None:
    """Normalize log levels and flag invalid inputs."""
    level, invalid = normalize_log_level(input_level)
    assert level == expected_level, (
        f"Expected {input_level!r} to normalize to {expected_level}."
    )
    assert invalid is expected_invalid, (
        f"Expected invalid flag {expected_invalid} for {input_level!r}."
    )


def test_log_info_without_args_keeps_template_verbatim() -> None:
    """A template with a literal percent sign is not interpolated without args."""
    logger = _FakeLogger()

    log_info(logger, "disk at 100%")

    assert logger.calls == [("INFO", "disk at 100%", None, False)], (
        "Expected the template to be logged unchanged."
    )


def test_log_warning_formats_and_forwards_exc_info() -> None:
    """log_warning interpolates args and forwards exc_info."""
    logger = _FakeLogger()
    exc = RuntimeError("boom")

    log_warning(logger, "fetch %s failed (exit %d)", "github.com/a/b", 2, exc_info=exc)

    assert logger.calls == [
        ("WARNING", "fetch github.com/a/b failed (exit 2)", exc, False)
    ], "Expected WARNING entry with formatted message and exc_info."


def test_log_error_and_exception_use_error_level() -> None:
    """Both error helpers emit ERROR entries."""
    logger = _FakeLogger()
    exc = ValueError("bad")

    log_error(logger, "error: %s", "oops")
    log_exception(logger, "failed", exc)

    assert [call[0] for call in logger.calls] == ["ERROR", "ERROR"], (
        "Expected two ERROR entries."
    )
    assert logger.calls[1][2] is exc, "Expected log_exception to attach exc_info."


def test_configure_logging_passes_normalized_level(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """configure_logging hands the normalized level and force flag to basicConfig."""
    captured: dict[str, object] = {}

    def fake_basic_config(**kwargs: object) -> None:
        captured.update(kwargs)

    monkeypatch.setattr("mirrorsync.logging.basicConfig", fake_basic_config)

    normalized, invalid = configure_logging("nope", force=True)

    assert (normalized, invalid) == ("INFO", True), "Expected INFO fallback."
    assert captured == {"level": "INFO", "force": True}, (
        f"Unexpected basicConfig arguments: {captured}"
    )
