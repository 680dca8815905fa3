"""Probe error types and the guarded top-level runner."""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

T = TypeVar("T")
E = TypeVar("E")


class ProbeError(Exception):
    """An error raised while talking to a target."""

    def __init__(self, msg: str = "") -> None:
        super().__init__(msg)
        self.msg = msg


class ProbeTimeout(ProbeError):
    """A target operation did not complete in time."""


class TargetLost(ProbeError):
    """The connection to the target was lost."""


def run_guarded(
    body: Callable[[], T], on_error: Callable[[ProbeError], E]
) -> T | E:
    """Run *body*; if it raises ProbeError, hand the error to *on_error*.

    Returns whatever *body* returned, or what *on_error* returned. Other
    exceptions are not caught.
    """
    try:
        return body()
    except ProbeError as exc:
        return on_error(exc)