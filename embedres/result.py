"""Outcome of a resource compilation."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ResultKind(enum.Enum):
    """What happened when a resource was to be compiled."""

    NOT_WINDOWS = "not_windows"
    """Not building for Windows."""
    OK = "ok"
    """Built and linked."""
    NOT_ATTEMPTED = "not_attempted"
    """Building for Windows, but no usable resource compiler was found."""
    FAILED = "failed"
    """A resource compiler was found but failed."""


class CompilationError(Exception):
    """Raised when a :class:`CompilationResult` is not acceptable."""

    def __init__(self, result: CompilationResult) -> None:
        super().__init__(str(result))
        self.result = result


@dataclass(frozen=True)
class CompilationResult:
    """Result of compiling a resource.

    Use :meth:`manifest_optional` when the manifest is cosmetic and
    :meth:`manifest_required` when it is mandatory.
    """

    kind: ResultKind
    message: str = ""

    @classmethod
    def not_windows(cls) -> CompilationResult:
        return cls(ResultKind.NOT_WINDOWS)

    @classmethod
    def ok(cls) -> CompilationResult:
        return cls(ResultKind.OK)

    @classmethod
    def not_attempted(cls, why: str) -> CompilationResult:
        return cls(ResultKind.NOT_ATTEMPTED, why)

    @classmethod
    def failed(cls, error: str) -> CompilationResult:
        return cls(ResultKind.FAILED, error)

    def manifest_optional(self) -> None:
        """Raise :class:`CompilationError` only if compilation failed."""
        if self.kind is ResultKind.FAILED:
            raise CompilationError(self)

    def manifest_required(self) -> None:
        """Raise :class:`CompilationError` if compilation failed or was not attempted."""
        if self.kind in (ResultKind.FAILED, ResultKind.NOT_ATTEMPTED):
            raise CompilationError(self)

    def __str__(self) -> str:
        match self.kind:
            case ResultKind.NOT_WINDOWS:
                body = "not building for windows"
            case ResultKind.OK:
                body = "OK"
            case ResultKind.NOT_ATTEMPTED:
                body = "compilation not attempted: "
                if " " not in self.message:
                    body += "missing compiler: "
                body += self.message
            case _:
                body = self.message
        return "embed-resource: " + body