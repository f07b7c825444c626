"""
Tests for local and remote command execution.
"""
import sys
import tempfile
import unittest
from pathlib import Path, PurePosixPath

import paramiko

import gensync.config as cfg
from gensync.core.command_runner import CommandRunner, Target


class BrokenSSH:
    """SSH manager whose connection can never be established."""

    def ensure_connected(self):
        raise paramiko.SSHException("connection refused")

    def disconnect(self):
        pass


class RecordingSSH:
    def __init__(self, result=("out\n", "", 0)):
        self.commands = []
        self.result = result

    def ensure_connected(self):
        pass

    def exec(self, cmd, timeout=30, listener=None):
        self.commands.append((cmd, timeout))
        return self.result

    def disconnect(self):
        pass


def py(code: str) -> list:
    return [sys.executable, "-c", code]


class TestRunLocally(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)
        self.runner = CommandRunner(ssh=BrokenSSH(), project_root=self.root)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_runs_in_project_root_and_trims(self):
        out = self.runner.run_locally(py("import os; print(os.getcwd())"))
        self.assertEqual(out.exit_code, 0)
        self.assertEqual(Path(out.stdout).resolve(), self.root.resolve())

    def test_reports_actual_exit_code_and_stderr(self):
        out = self.runner.run_locally(py("import sys; sys.stderr.write('bad\\n'); sys.exit(3)"))
        self.assertEqual(out.exit_code, 3)
        self.assertEqual(out.stderr, "bad")

    def test_timeout_kills_process(self):
        out = self.runner.run_locally(py("import time; time.sleep(30)"), timeout=0.5)
        self.assertNotEqual(out.exit_code, 0)

    def test_listener_receives_lines(self):
        lines = []
        out = self.runner.run_locally(
            py("import sys; print('one'); print('two'); sys.stderr.write('err\\n')"),
            listener=lambda line, is_err: lines.append((line, is_err)),
        )
        self.assertEqual(out.exit_code, 0)
        self.assertIn(("one", False), lines)
        self.assertIn(("two", False), lines)
        self.assertIn(("err", True), lines)
        self.assertEqual(out.stdout, "one\ntwo")

    def test_redirect_to_file(self):
        target = self.root / "out.txt"
        out = self.runner.run_locally(py("print('hello')"), redirect_to=target)
        self.assertEqual(out.stdout, "")
        self.assertEqual(target.read_text(encoding="utf-8").strip(), "hello")

    def test_missing_executable(self):
        out = self.runner.run_locally(["definitely-not-a-real-binary-gensync"])
        self.assertEqual(out.exit_code, 127)

    def test_stop_without_process(self):
        self.assertFalse(self.runner.stop())

    def test_run_dispatches_local(self):
        out = self.runner.run(Target.LOCAL, py("print('x')"))
        self.assertEqual(out.stdout, "x")


class TestRunRemotely(unittest.TestCase):

    def setUp(self):
        self._old_root = cfg.REMOTE_ROOT
        cfg.REMOTE_ROOT = PurePosixPath("/srv/www/project")

    def tearDown(self):
        cfg.REMOTE_ROOT = self._old_root

    def test_no_session_returns_sentinel(self):
        runner = CommandRunner(ssh=BrokenSSH())
        out = runner.run_remotely("git status")
        self.assertEqual((out.stdout, out.stderr, out.exit_code), ("", "", 2))

    def test_command_runs_in_remote_root(self):
        ssh = RecordingSSH()
        runner = CommandRunner(ssh=ssh)
        out = runner.run(Target.REMOTE, "ls", timeout=7)
        self.assertEqual(out.exit_code, 0)
        self.assertEqual(out.stdout, "out\n")
        cmd, timeout = ssh.commands[0]
        self.assertEqual(cmd, "cd '/srv/www/project' && ls")
        self.assertEqual(timeout, 7)

    def test_list_command_is_quoted_for_remote(self):
        ssh = RecordingSSH()
        CommandRunner(ssh=ssh).run(Target.REMOTE, ["git", "add", "a b.php"])
        self.assertTrue(ssh.commands[0][0].endswith("'git' 'add' 'a b.php'"))

    def test_nonzero_exit_is_returned(self):
        ssh = RecordingSSH(("", "fatal: no repo", 128))
        out = CommandRunner(ssh=ssh).run_remotely("git status")
        self.assertEqual(out.exit_code, 128)
        self.assertEqual(out.stderr, "fatal: no repo")

    def test_timeout_is_reported(self):
        class SlowSSH(RecordingSSH):
            def exec(self, cmd, timeout=30, listener=None):
                raise TimeoutError("remote command timed out")

        out = CommandRunner(ssh=SlowSSH()).run_remotely("sleep 100", timeout=1)
        self.assertEqual(out.exit_code, -1)


if __name__ == "__main__":
    unittest.main()
