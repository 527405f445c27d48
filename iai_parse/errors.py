"""
Errors raised while turning benchmark reports into CSV.

Everything derived from IaiParseError is reported to the user as
"Error: <message>" and aborts the run, except RevisionPathMiss, which only
skips one path in one revision.
"""

from __future__ import annotations

from pathlib import Path


class IaiParseError(Exception):
    """Base class for errors reported to the user."""


class ReportParseError(IaiParseError):
    """A report line could not be parsed."""

    def __init__(self, reason: str, line: bytes, benchmark: bytes = b""):
        super().__init__(reason, line, benchmark)
        self.reason    = reason
        self.line      = line
        self.benchmark = benchmark
        self.source: Path | str | None = None

    def __str__(self) -> str:
        where = f"{self.source}: " if self.source is not None else ""
        return f"{where}{self.reason} in line {self.line!r} (benchmark {self.benchmark!r})"


class InputError(IaiParseError):
    """An input report could not be read."""


class OutputError(IaiParseError):
    """The CSV could not be written."""


class ConfigError(IaiParseError):
    """The configuration file or option combination is invalid."""


class RevisionError(IaiParseError):
    """A revision expression or the repository behind it is unusable."""


class RevisionPathMiss(IaiParseError):
    """A path has no readable file in a revision. Not fatal."""

    def __init__(self, path: str, revision: str):
        super().__init__(path, revision)
        self.path     = path
        self.revision = revision


class PathNotFound(RevisionPathMiss):
    def __str__(self) -> str:
        return f"{self.path!r} not found in {self.revision}"


class PathNotAFile(RevisionPathMiss):
    def __init__(self, path: str, revision: str, kind: str):
        super().__init__(path, revision)
        self.kind = kind

    def __str__(self) -> str:
        return f"{self.path!r} is {self.kind} in {self.revision}"
