from __future__ import annotations

from contextlib import redirect_stderr, redirect_stdout
from io import StringIO
from pathlib import Path
from typing import Dict
import tempfile
import unittest

from bach.cli import main

from tests.helpers import write


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.base = Path(self.temp_dir.name)
        self.environ: Dict[str, str] = {"BACH_BASE": str(self.base), "HOME": str(self.base)}

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def run_cli(self, *tokens: str):
        stdout, stderr = StringIO(), StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            code = main(list(tokens), environ=self.environ)
        return code, stdout.getvalue(), stderr.getvalue()

    def test_help_action(self) -> None:
        code, out, _ = self.run_cli("help")
        self.assertEqual(code, 0)
        self.assertIn("Usage: bach [<action>...]", out)

    def test_clean_then_scaffold(self) -> None:
        write(self.base / "bin" / "stale.txt", "")
        code, out, _ = self.run_cli("clean", "scaffold")
        self.assertEqual(code, 0)
        self.assertFalse((self.base / "bin").exists())
        self.assertTrue((self.base / "src" / "demo" / "module-info.java").is_file())
        self.assertIn("Created", out)

    def test_unknown_action_exit_code(self) -> None:
        code, _, err = self.run_cli("deploy")
        self.assertEqual(code, 2)
        self.assertIn("Unknown action: deploy", err)

    def test_failing_action_exit_code(self) -> None:
        self.environ["BACH_RUN_REDIRECT_TYPE"] = "DISCARD"
        code, _, err = self.run_cli("tool", "definitely-not-a-real-tool-4711")
        self.assertEqual(code, 1)
        self.assertIn("Action failed: TOOL definitely-not-a-real-tool-4711 []", err)

    def test_disabled_action_via_environment(self) -> None:
        self.environ["BACH_ACTION_SCAFFOLD_ENABLED"] = "false"
        code, out, _ = self.run_cli("scaffold")
        self.assertEqual(code, 0)
        self.assertFalse((self.base / "src").exists())
        self.assertIn("Action SCAFFOLD disabled.", out)

    def test_broken_properties_file(self) -> None:
        (self.base / "bach.toml").write_text("[bach\n", encoding="utf-8")
        code, _, err = self.run_cli("help")
        self.assertEqual(code, 1)
        self.assertIn("Loading properties failed", err)


if __name__ == "__main__":
    unittest.main()
