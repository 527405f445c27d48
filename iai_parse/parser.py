"""
Line parser for benchmark reports such as iai's output:

    bench_fibonacci_short
      Instructions:                1735 (No change)
      L1 Accesses:                 2364 (+0.0%)

A line that does not start with a space names the current benchmark. An
indented line is "<parameter>:<value> <anything>"; only the first run of
non-space bytes after the colon is kept. Indented lines seen before any
benchmark name are recorded under the empty benchmark name.

Reports are bytes and are never decoded.
"""

from __future__ import annotations

import re
from abc import ABCMeta, abstractmethod

from .errors import ReportParseError

_LINE_BREAK = re.compile(rb"[\r\n]")


class Sink(metaclass=ABCMeta):
    """Receives every (benchmark, parameter, value) triple found by parse()."""

    @abstractmethod
    def record(self, benchmark: bytes, parameter: bytes, value: bytes) -> None:
        pass


def parse(report: bytes, sink: Sink) -> None:
    """Parse `report` and feed each parameter line to `sink`.

    Raises ReportParseError on the first malformed line; whatever the sink
    already received is left as it is.
    """
    benchmark = b""

    for line in _LINE_BREAK.split(bytes(report)):
        if not line:
            continue
        if line.startswith(b" "):
            parameter, value = parse_parameter_line(line, benchmark)
            sink.record(benchmark, parameter, value)
        else:
            benchmark = line


def parse_parameter_line(line: bytes, benchmark: bytes = b"") -> tuple[bytes, bytes]:
    """Split "  Instructions:  451 (+0.0%)" into (b"Instructions", b"451")."""
    parameter, colon, rest = line.lstrip(b" ").partition(b":")
    if not colon:
        raise ReportParseError("missing ':' after parameter name", line, benchmark)
    return parameter, parse_parameter_value(rest, line, benchmark)


def parse_parameter_value(rest: bytes, line: bytes = b"", benchmark: bytes = b"") -> bytes:
    """Return the first run of non-space bytes in `rest`."""
    value = rest.lstrip(b" ").split(b" ", 1)[0]
    if not value:
        raise ReportParseError("empty parameter value", line or rest, benchmark)
    return value
