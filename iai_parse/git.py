"""
Revision graph and file lookup backed by the `git` command line.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path, PurePosixPath
from typing import Sequence

from .errors import PathNotAFile, PathNotFound, RevisionError
from .revisions import Revision, RevisionGraph, expand

logger = logging.getLogger(__name__)

ABBREV_LENGTH = 7


def abbrev(revision: str) -> str:
    # TODO: check that the abbreviations are unique within the table.
    return revision[:ABBREV_LENGTH]


def tree_path(path: str | Path) -> str:
    """Normalize a path the way it appears in a git tree ("./a//b" -> "a/b")."""
    return PurePosixPath(path).as_posix()


class GitRepository(RevisionGraph):
    """A repository opened at `path`.

    Without a path git's own discovery applies: $GIT_DIR, then the working
    directory and its parents.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = path
        self._parents: dict[str, list[str]] = {}
        self.git_dir = self._git("rev-parse", "--git-dir").strip().decode()

    # ── Running git ──────────────────────────────────────────────────────────

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        cmd = ["git"]
        if self.path is not None:
            cmd += ["-C", str(self.path)]
        cmd += args
        logger.debug("running %s", " ".join(cmd))
        try:
            return subprocess.run(cmd, capture_output=True)
        except OSError as error:
            raise RevisionError(f"Failed to run git: {error}") from error

    def _git(self, *args: str) -> bytes:
        result = self._run(*args)
        if result.returncode != 0:
            message = result.stderr.decode(errors="replace").strip()
            raise RevisionError(f"git {args[0]} failed: {message}")
        return result.stdout

    # ── RevisionGraph ────────────────────────────────────────────────────────

    def resolve(self, name: str) -> str | None:
        result = self._run("rev-parse", "--verify", "--quiet", f"{name}^{{commit}}")
        if result.returncode != 0:
            return None
        return result.stdout.strip().decode()

    def parents_of(self, revision: str) -> Sequence[str]:
        if revision not in self._parents:
            # One rev-list loads the parents of the whole history at once.
            for line in self._git("rev-list", "--parents", revision).decode().splitlines():
                commit, *parents = line.split()
                self._parents[commit] = parents
        return self._parents[revision]

    # ── Revisions ────────────────────────────────────────────────────────────

    def summary(self, revision: str) -> bytes:
        return self._git("show", "-s", "--format=%s", revision).rstrip(b"\n")

    def revision(self, revision: str) -> Revision:
        label = f"{abbrev(revision)} ".encode() + self.summary(revision)
        return Revision(revision, label, lambda path: self.blob_at(revision, path))

    def revisions(self, expression: str) -> list[Revision]:
        """Expand `expression` and load each revision, oldest first."""
        revisions = [self.revision(revision) for revision in expand(expression, self)]
        logger.info("%s: %d revision(s)", expression, len(revisions))
        return revisions

    def blob_at(self, revision: str, path: str | Path) -> bytes:
        """Content of the file at `path` (relative to the repository root)."""
        name   = tree_path(path)
        output = self._git("ls-tree", "--full-tree", "-z", revision, "--", name)
        for entry in output.split(b"\0"):
            info, _, entry_path = entry.partition(b"\t")
            if entry_path.decode(errors="surrogateescape") != name:
                continue
            _mode, kind, oid = info.decode().split()
            match kind:
                case "blob":
                    return self._git("cat-file", "blob", oid)
                case "tree":
                    raise PathNotAFile(name, revision, "directory")
                case _:
                    raise PathNotAFile(name, revision, kind)
        raise PathNotFound(name, revision)
