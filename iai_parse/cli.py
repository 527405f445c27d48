"""
Convert benchmark reports to CSV, optionally across git revisions.
Usage: iai-parse [INPUT ...] [-r main..HEAD] [--git-repo PATH] [-o out.csv]

Without revisions every INPUT is parsed from the filesystem into a single
"value" column. With revisions, every INPUT is read from each revision's
tree and each revision becomes a column.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import BinaryIO, Callable

from . import __version__
from .config import Settings, resolve_settings
from .errors import IaiParseError, InputError, OutputError, ReportParseError, RevisionPathMiss
from .git import GitRepository
from .parser import Sink, parse
from .table import CsvSink, Table, csv_writer

logger = logging.getLogger(__name__)

# ── Helpers ───────────────────────────────────────────────────────────────────

def read(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as error:
        raise InputError(f"Failed to read {path}: {error.strerror or error}") from error


def parse_source(report: bytes, sink: Sink, source: Path | str) -> None:
    """parse(), with `source` attached to any parse error."""
    try:
        parse(report, sink)
    except ReportParseError as error:
        error.source = source
        raise


def write_output(output: Path | None, emit: Callable[[BinaryIO], None]) -> None:
    """Call `emit` with the output stream: `output`, or stdout if None."""
    destination = output if output is not None else "standard output"
    try:
        if output is None:
            emit(sys.stdout.buffer)
            sys.stdout.buffer.flush()
        else:
            with output.open("wb") as stream:
                emit(stream)
    except OSError as error:
        raise OutputError(f"Failed to write {destination}: {error.strerror or error}") from error

# ── Modes ─────────────────────────────────────────────────────────────────────

def parse_in_working_tree(paths: list[Path]) -> Table:
    """Parse paths from the filesystem (as opposed to from git history)."""
    table  = Table()
    column = table.column(b"value")
    for path in paths:
        parse_source(read(path), column, path)
        logger.info("parsed %s", path)
    return table


def parse_in_git(paths: list[Path], revspecs: list[str], repo_path: Path | None) -> Table:
    """Parse paths as they are in every revision of `revspecs`."""
    repo = GitRepository(repo_path)

    # Expand everything first so a bad expression fails before any parsing.
    revisions = [revision for revspec in revspecs for revision in repo.revisions(revspec)]

    table = Table()
    for revision in revisions:
        column = table.column(revision.label)
        for path in paths:
            try:
                report = revision.blob_at(str(path))
            except RevisionPathMiss as miss:
                logger.warning("%s", miss)
                continue
            parse_source(report, column, f"{path} in {revision.id}")
    return table


def stream_in_working_tree(paths: list[Path], stream: BinaryIO) -> None:
    """Write each record as it is parsed, without lining up columns."""
    with csv_writer(stream) as writer:
        sink = CsvSink(writer)
        for path in paths:
            parse_source(read(path), sink, path)


def cli(settings: Settings) -> None:
    """Do the real work; errors are raised for main() to report."""
    if settings.stream:
        write_output(settings.output, lambda stream: stream_in_working_tree(settings.input, stream))
        return

    if settings.git_revs:
        table = parse_in_git(settings.input, settings.git_revs, settings.git_repo)
    else:
        table = parse_in_working_tree(settings.input)

    write_output(settings.output, table.write_csv)

# ── Main ──────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="iai-parse",
        description="Convert benchmark output (e.g. from iai) to CSV.",
    )
    parser.add_argument("input", nargs="*", type=Path, help="File(s) to parse")
    parser.add_argument("-r", "--git-revs", action="append", default=[], metavar="REVSPEC",
                        help="Git revisions to check, e.g. main..HEAD (repeatable)")
    parser.add_argument("--git-repo", type=Path, metavar="PATH",
                        help="Path to git repo (defaults to consulting $GIT_DIR then "
                             "searching the working directory and its parents)")
    parser.add_argument("-o", "--output", type=Path, metavar="PATH",
                        help="Write CSV to PATH instead of standard output")
    parser.add_argument("--stream", action="store_true",
                        help="Write rows as they are parsed (no git revisions)")
    parser.add_argument("--config", type=Path, metavar="PATH",
                        help="YAML config file (default: ./iai-parse.yml if present)")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Log progress (-v) or git commands (-vv)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def log_level(verbose: int) -> int:
    """WARNING by default, INFO with -v, DEBUG with -vv or more."""
    return {0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG)


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=log_level(args.verbose), format="%(message)s")

    try:
        cli(resolve_settings(args))
    except IaiParseError as error:
        sys.exit(f"Error: {error}")


if __name__ == "__main__":
    main()
