from __future__ import annotations

from pathlib import Path
import sys
import tempfile
import unittest

from core.command_runner import (
    CommandError,
    RecordingCommandRunner,
    RedirectMode,
    SubprocessCommandRunner,
)


class RedirectModeTests(unittest.TestCase):
    def test_parse_is_case_insensitive(self) -> None:
        self.assertIs(RedirectMode.parse("inherit"), RedirectMode.INHERIT)
        self.assertIs(RedirectMode.parse(" File "), RedirectMode.FILE)
        self.assertIs(RedirectMode.parse("DISCARD"), RedirectMode.DISCARD)

    def test_unrecognized_value_falls_back_to_pipe(self) -> None:
        self.assertIs(RedirectMode.parse("bogus"), RedirectMode.PIPE)
        self.assertIs(RedirectMode.parse(""), RedirectMode.PIPE)
        self.assertIs(RedirectMode.parse(None), RedirectMode.PIPE)


class SubprocessCommandRunnerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.runner = SubprocessCommandRunner()

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_pipe_captures_output(self) -> None:
        result = self.runner.run([sys.executable, "-c", "print('hello')"])
        self.assertEqual(result.returncode, 0)
        self.assertEqual(result.stdout.strip(), "hello")
        self.assertTrue(result.captured)

    def test_pipe_replaces_undecodable_bytes(self) -> None:
        script = "import sys; sys.stdout.buffer.write(b'\\xff\\xfe caf\\xe9\\n')"
        result = self.runner.run([sys.executable, "-c", script])
        self.assertEqual(result.returncode, 0)
        self.assertEqual(result.stdout, "\ufffd\ufffd caf\ufffd\n")

    def test_discard_drops_output(self) -> None:
        result = self.runner.run(
            [sys.executable, "-c", "print('hidden')"],
            redirect=RedirectMode.DISCARD,
        )
        self.assertEqual(result.returncode, 0)
        self.assertEqual(result.stdout, "")

    def test_file_appends_stdout_and_stderr(self) -> None:
        target = self.root / "run.txt"
        target.write_text("existing\n", encoding="utf-8")
        script = "import sys; print('out'); sys.stdout.flush(); print('err', file=sys.stderr)"
        self.runner.run([sys.executable, "-c", script], redirect=RedirectMode.FILE, redirect_file=target)
        lines = target.read_text(encoding="utf-8").splitlines()
        self.assertEqual(lines[0], "existing")
        self.assertIn("out", lines)
        self.assertIn("err", lines)

    def test_file_mode_requires_target(self) -> None:
        with self.assertRaises(ValueError):
            self.runner.run([sys.executable, "-c", "pass"], redirect=RedirectMode.FILE)

    def test_check_raises_command_error(self) -> None:
        with self.assertRaises(CommandError) as ctx:
            self.runner.run([sys.executable, "-c", "raise SystemExit(3)"])
        self.assertEqual(ctx.exception.result.returncode, 3)
        self.assertIn("exit code 3", str(ctx.exception))

    def test_no_check_returns_exit_code(self) -> None:
        result = self.runner.run([sys.executable, "-c", "raise SystemExit(4)"], check=False)
        self.assertEqual(result.returncode, 4)


class RecordingCommandRunnerTests(unittest.TestCase):
    def test_records_commands_and_scripted_exit_codes(self) -> None:
        runner = RecordingCommandRunner({"javac": 2})
        ok = runner.run(["jar", "--create"], check=False)
        failed = runner.run(["javac", "-d", "out"], check=False, redirect=RedirectMode.INHERIT)

        self.assertEqual(ok.returncode, 0)
        self.assertEqual(failed.returncode, 2)
        self.assertEqual(runner.programs(), ["jar", "javac"])
        self.assertIs(runner.commands[1].redirect, RedirectMode.INHERIT)

    def test_check_raises_on_scripted_failure(self) -> None:
        runner = RecordingCommandRunner({"javac": 1})
        with self.assertRaises(CommandError):
            runner.run(["javac"])


if __name__ == "__main__":
    unittest.main()
