import logging
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from iai_parse.cli import log_level, main, parse_in_git, parse_in_working_tree
from iai_parse.errors import ReportParseError, RevisionError
from iai_parse.git import GitRepository

from .test_git import make_history

CORPUS = Path(__file__).parent / "corpus"


class WorkingTreeTest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)
        self.output = self.dir / "out.csv"

    def tearDown(self):
        self._tmp.cleanup()

    def test_single_file(self):
        main([str(CORPUS / "simple.txt"), "-o", str(self.output)])
        self.assertEqual(self.output.read_bytes(), (CORPUS / "simple.csv").read_bytes())

    def test_files_share_value_column(self):
        extra = self.dir / "extra.txt"
        extra.write_bytes(b"bench_c\n  Instructions: 300\n")
        table = parse_in_working_tree([CORPUS / "simple.txt", extra])
        self.assertEqual(list(table.columns), [b"value"])
        self.assertEqual(table.benchmarks_and_parameters()[-1], (b"bench_c", b"Instructions"))

    def test_no_inputs(self):
        main(["-o", str(self.output)])
        self.assertEqual(self.output.read_bytes(), b"benchmark,parameter,value\n")

    def test_stream(self):
        main(["--stream", str(CORPUS / "iai-output-short.txt"), "-o", str(self.output)])
        self.assertEqual(self.output.read_bytes(), (CORPUS / "iai-output-short.csv").read_bytes())

    def test_unreadable_file(self):
        with self.assertRaises(SystemExit) as ctx:
            main([str(self.dir / "missing.txt"), "-o", str(self.output)])
        self.assertIn("Error: Failed to read", ctx.exception.code)
        self.assertFalse(self.output.exists())

    def test_malformed_report_writes_nothing(self):
        bad = self.dir / "bad.txt"
        bad.write_bytes(b"bench\n  garbage\n")
        with self.assertRaises(SystemExit) as ctx:
            main([str(CORPUS / "simple.txt"), str(bad), "-o", str(self.output)])
        self.assertIn(str(bad), ctx.exception.code)
        self.assertFalse(self.output.exists())

    def test_parse_error_names_source(self):
        bad = self.dir / "bad.txt"
        bad.write_bytes(b"bench\n  x:\n")
        with self.assertRaises(ReportParseError) as ctx:
            parse_in_working_tree([bad])
        self.assertEqual(ctx.exception.source, bad)

    def test_unwritable_output(self):
        with self.assertRaises(SystemExit) as ctx:
            main([str(CORPUS / "simple.txt"), "-o", str(self.dir / "no-dir" / "out.csv")])
        self.assertIn("Error: Failed to write", ctx.exception.code)


@unittest.skipUnless(shutil.which("git"), "git is not installed")
class GitModeTest(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmp = tempfile.TemporaryDirectory()
        cls.root = Path(cls._tmp.name) / "repo"
        cls.root.mkdir()
        cls.commits = make_history(cls.root)

    @classmethod
    def tearDownClass(cls):
        cls._tmp.cleanup()

    def test_columns_per_revision(self):
        with self.assertLogs("iai_parse.cli", level="WARNING") as logs:
            table = parse_in_git([Path("bench/report.txt")], ["main~3..main"], self.root)

        first, second, third = (c[:7] for c in self.commits[1:])
        self.assertEqual(table.headers(), [
            b"benchmark", b"parameter",
            f"{first} Add report".encode(),
            f"{second} Speed up bench_a".encode(),
            f"{third} Turn report into a directory".encode(),
        ])
        self.assertEqual(list(table.rows()), [
            [b"bench_a", b"Instructions", b"100", b"90", b""],
            [b"bench_a", b"L1 Hits", b"", b"50", b""],
        ])
        self.assertEqual(len(logs.output), 1)
        self.assertIn("is directory in", logs.output[0])

    def test_missing_path_is_skipped(self):
        with self.assertLogs("iai_parse.cli", level="WARNING") as logs:
            table = parse_in_git([Path("bench/report.txt")], [self.commits[0]], self.root)
        self.assertEqual(list(table.rows()), [])
        self.assertIn("not found in", logs.output[0])

    def test_same_revision_twice_shares_column(self):
        table = parse_in_git([Path("bench/report.txt")], ["HEAD~1", self.commits[2]], self.root)
        self.assertEqual(len(table.columns), 1)

    def test_end_to_end(self):
        output = Path(self._tmp.name) / "out.csv"
        main(["--git-repo", str(self.root), "-r", "HEAD~2", "bench/report.txt", "-o", str(output)])
        self.assertEqual(
            output.read_bytes(),
            f"benchmark,parameter,{self.commits[1][:7]} Add report\n"
            "bench_a,Instructions,100\n".encode(),
        )

    def test_bad_revision_is_fatal(self):
        output = Path(self._tmp.name) / "never.csv"
        with self.assertRaises(SystemExit) as ctx:
            main(["--git-repo", str(self.root), "-r", "nope..main", "bench/report.txt",
                  "-o", str(output)])
        self.assertIn("Unknown revision", ctx.exception.code)
        self.assertFalse(output.exists())

    def test_git_failure_reading_a_file_is_fatal(self):
        output = Path(self._tmp.name) / "never.csv"
        failure = RevisionError("git cat-file failed: bad object")
        with mock.patch.object(GitRepository, "blob_at", side_effect=failure):
            with self.assertRaises(SystemExit) as ctx:
                main(["--git-repo", str(self.root), "-r", "main~3..main", "bench/report.txt",
                      "-o", str(output)])
        self.assertEqual(ctx.exception.code, "Error: git cat-file failed: bad object")
        self.assertFalse(output.exists())


class LogLevelTest(unittest.TestCase):
    def test_verbosity(self):
        self.assertEqual(log_level(0), logging.WARNING)
        self.assertEqual(log_level(1), logging.INFO)
        self.assertEqual(log_level(2), logging.DEBUG)
        self.assertEqual(log_level(5), logging.DEBUG)


if __name__ == "__main__":
    unittest.main()
