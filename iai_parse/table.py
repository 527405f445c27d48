"""
Columns of parsed benchmark results and the table that lines them up as CSV.

A Table holds one Column per run (a revision, or "value" for plain files).
Rows are keyed by (benchmark, parameter); every pair seen in any column gets
exactly one row, and columns without that pair get an empty cell.
"""

from __future__ import annotations

import csv
import io
from contextlib import contextmanager
from typing import TYPE_CHECKING, BinaryIO, Iterable, Iterator

if TYPE_CHECKING:
    import pandas as pd

from .parser import Sink

HEADER_START = [b"benchmark", b"parameter"]


def _as_bytes(name: bytes | str) -> bytes:
    return name.encode() if isinstance(name, str) else bytes(name)


# ── CSV ───────────────────────────────────────────────────────────────────────

class ByteRowWriter:
    """csv.writer for rows of byte strings.

    Fields go through a UTF-8 surrogateescape layer, so bytes that are not
    valid UTF-8 come out exactly as they went in. Rows with a CR or LF in
    any field are written fully quoted; csv only quotes for the characters
    of its own line terminator.
    """

    def __init__(self, text: io.TextIOBase):
        self._writer        = csv.writer(text, lineterminator="\n")
        self._quoted_writer = csv.writer(text, lineterminator="\n", quoting=csv.QUOTE_ALL)

    def writerow(self, row: Iterable[bytes]) -> None:
        fields = list(row)
        writer = self._writer
        if any(b"\r" in field or b"\n" in field for field in fields):
            writer = self._quoted_writer
        writer.writerow([field.decode("utf-8", "surrogateescape") for field in fields])


@contextmanager
def csv_writer(stream: BinaryIO) -> Iterator[ByteRowWriter]:
    """Wrap a binary stream for CSV output without taking ownership of it."""
    text = io.TextIOWrapper(
        stream, encoding="utf-8", errors="surrogateescape", newline="", write_through=True,
    )
    try:
        yield ByteRowWriter(text)
    finally:
        text.detach()


class CsvSink(Sink):
    """Writes each parsed triple as a CSV row as soon as it arrives."""

    def __init__(self, writer: ByteRowWriter):
        self.writer = writer
        self.writer.writerow(HEADER_START + [b"value"])

    def record(self, benchmark: bytes, parameter: bytes, value: bytes) -> None:
        self.writer.writerow([benchmark, parameter, value])


# ── Table ─────────────────────────────────────────────────────────────────────

class Column(Sink):
    """Values from one benchmark run.

    `benchmarks` maps a benchmark name (e.g. a function name) to a map of
    parameter names to values, e.g. {b"Instructions": b"451"}. Both levels
    keep insertion order.
    """

    def __init__(self):
        self.benchmarks: dict[bytes, dict[bytes, bytes]] = {}

    def get(self, benchmark: bytes, parameter: bytes) -> bytes | None:
        return self.benchmarks.get(benchmark, {}).get(parameter)

    def set(self, benchmark: bytes, parameter: bytes, value: bytes) -> None:
        # Last write wins; the pair keeps its first position.
        self.benchmarks.setdefault(benchmark, {})[parameter] = value

    record = set

    def pairs(self) -> Iterator[tuple[bytes, bytes]]:
        for benchmark, parameters in self.benchmarks.items():
            for parameter in parameters:
                yield benchmark, parameter

    def __len__(self) -> int:
        return sum(len(parameters) for parameters in self.benchmarks.values())


class Table:
    """Ordered map of column names to Columns."""

    def __init__(self):
        self.columns: dict[bytes, Column] = {}

    def column(self, name: bytes | str) -> Column:
        """Get the column called `name`, creating it if it doesn't exist yet."""
        return self.columns.setdefault(_as_bytes(name), Column())

    def headers(self) -> list[bytes]:
        return HEADER_START + list(self.columns)

    def benchmarks_and_parameters(self) -> list[tuple[bytes, bytes]]:
        """Every (benchmark, parameter) pair in any column, once.

        Pairs are ordered by first appearance, scanning columns in insertion
        order and each column in its own order.
        """
        pairs = dict.fromkeys(
            pair for column in self.columns.values() for pair in column.pairs()
        )
        return list(pairs)

    def rows(self) -> Iterator[list[bytes]]:
        """Data rows, without the header. Missing cells are b""."""
        for benchmark, parameter in self.benchmarks_and_parameters():
            values = [column.get(benchmark, parameter) for column in self.columns.values()]
            yield [benchmark, parameter] + [b"" if v is None else v for v in values]

    def write_csv(self, stream: BinaryIO) -> None:
        """Write the header and all rows to a binary stream.

        OSError from the stream propagates unchanged.
        """
        with csv_writer(stream) as writer:
            writer.writerow(self.headers())
            for row in self.rows():
                writer.writerow(row)

    def to_frame(self) -> pd.DataFrame:
        """The table as a DataFrame indexed by (benchmark, parameter)."""
        import pandas as pd

        pairs = self.benchmarks_and_parameters()
        index = pd.MultiIndex.from_tuples(pairs, names=["benchmark", "parameter"])
        data  = {
            name: [column.get(benchmark, parameter) for benchmark, parameter in pairs]
            for name, column in self.columns.items()
        }
        return pd.DataFrame(data, index=index, columns=list(self.columns), dtype=object)
