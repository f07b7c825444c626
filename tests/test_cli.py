"""
Integration tests for gensync CLI behavior and configuration loading.

Tests:
  - .gensync discovery: searching parent directories upward
  - config loading: apply_profile correctly mutates module variables
  - gensync init: creates a valid .gensync YAML, refuses overwrite without --force
  - gensync run: runs a local command and exits with its status
"""
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path, PurePosixPath


# ── Helpers ───────────────────────────────────────────────────────────────────

REPO_ROOT = Path(__file__).parent.parent


def run_gensync(*args, cwd=None, input_text=""):
    """Run the gensync CLI and return (returncode, stdout, stderr)."""
    result = subprocess.run(
        [sys.executable, "-m", "gensync", *args],
        cwd=str(cwd or REPO_ROOT),
        capture_output=True,
        text=True,
        input=input_text,
        env={**os.environ, "PYTHONPATH": str(REPO_ROOT),
             "XDG_CONFIG_HOME": str(Path(cwd or REPO_ROOT) / ".no-config")},
    )
    return result.returncode, result.stdout, result.stderr


# ── Tests: .gensync discovery ─────────────────────────────────────────────────

class TestFindProjectFile(unittest.TestCase):
    """Tests for find_project_file() — upward search through parent directories."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name).resolve()

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_find_in_same_directory(self):
        from gensync.config import find_project_file
        (self.root / ".gensync").write_text("profiles: []\n", encoding="utf-8")
        self.assertEqual(find_project_file(self.root), self.root / ".gensync")

    def test_find_in_parent_directory(self):
        from gensync.config import find_project_file
        (self.root / ".gensync").write_text("profiles: []\n", encoding="utf-8")
        subdir = self.root / "a" / "b" / "c"
        subdir.mkdir(parents=True)
        self.assertEqual(find_project_file(subdir), self.root / ".gensync")

    def test_finds_nearest_project_file(self):
        from gensync.config import find_project_file
        (self.root / ".gensync").write_text("profiles: []\n", encoding="utf-8")
        sub_a = self.root / "a"
        sub_a.mkdir()
        (sub_a / ".gensync").write_text("profiles: []\n", encoding="utf-8")
        deep = sub_a / "b" / "c"
        deep.mkdir(parents=True)
        self.assertEqual(find_project_file(deep), sub_a / ".gensync")


# ── Tests: config loading ─────────────────────────────────────────────────────

class TestLoadProfile(unittest.TestCase):
    """Tests for load_project_file and apply_profile."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name).resolve()
        import gensync.config as cfg
        self._saved = {k: getattr(cfg, k) for k in (
            "SSH_HOST", "SSH_PORT", "SSH_USER", "LOCAL_ROOT", "REMOTE_ROOT",
            "REMOTE_TIMEOUT", "DEFAULT_ENCODING")}

    def tearDown(self):
        import gensync.config as cfg
        for k, v in self._saved.items():
            setattr(cfg, k, v)
        self.tmpdir.cleanup()

    def _write(self, content):
        p = self.root / ".gensync"
        p.write_text(content, encoding="utf-8")
        return p

    def test_load_profile_basic(self):
        import gensync.config as cfg
        p = self._write(
            "profiles:\n"
            "  - name: default\n"
            "    server: dev.example.com\n"
            "    port: 2222\n"
            "    user: kphp\n"
            "    remote_root: /home/kphp/www\n"
            "    remote_timeout: 10\n"
            "    encoding: windows-1251\n"
        )
        cfg.apply_profile(cfg.get_profile(cfg.load_project_file(p), "default"))
        self.assertEqual(cfg.SSH_HOST, "dev.example.com")
        self.assertEqual(cfg.SSH_PORT, 2222)
        self.assertEqual(cfg.SSH_USER, "kphp")
        self.assertEqual(cfg.REMOTE_ROOT, PurePosixPath("/home/kphp/www"))
        self.assertEqual(cfg.REMOTE_TIMEOUT, 10.0)
        self.assertEqual(cfg.DEFAULT_ENCODING, "windows-1251")

    def test_base_remote_and_relative_local_root(self):
        import gensync.config as cfg
        p = self._write(
            "profiles:\n"
            "  - name: default\n"
            "    local_root: ./checkout\n"
            "    remote_root: projects/www\n"
            "defaults:\n"
            "  base_remote: /home/user\n"
        )
        cfg.apply_profile(cfg.get_profile(cfg.load_project_file(p)), base_dir=self.root)
        self.assertEqual(cfg.REMOTE_ROOT, PurePosixPath("/home/user/projects/www"))
        self.assertEqual(cfg.LOCAL_ROOT, self.root / "checkout")

    def test_get_profile_by_name_and_fallback(self):
        import gensync.config as cfg
        p = self._write(
            "profiles:\n"
            "  - name: dev\n"
            "    server: dev.example.com\n"
            "  - name: prod\n"
            "    server: prod.example.com\n"
        )
        data = cfg.load_project_file(p)
        self.assertEqual(cfg.get_profile(data, "prod")["server"], "prod.example.com")
        self.assertEqual(cfg.get_profile(data, "missing")["server"], "dev.example.com")


# ── Tests: CLI ────────────────────────────────────────────────────────────────

class TestInitCommand(unittest.TestCase):
    """Tests for the 'gensync init' subcommand."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.cwd = Path(self.tmpdir.name)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_init_creates_valid_yaml(self):
        rc, out, err = run_gensync(
            "init", "--server", "myhost.com", "--port", "2222",
            "--remote", "/home/kphp/www", "--encoding", "windows-1251",
            cwd=self.cwd,
        )
        self.assertEqual(rc, 0, msg=f"stderr: {err}")
        import yaml
        data = yaml.safe_load((self.cwd / ".gensync").read_text(encoding="utf-8"))
        profile = data["profiles"][0]
        self.assertEqual(profile["server"], "myhost.com")
        self.assertEqual(profile["port"], 2222)
        self.assertEqual(profile["remote_root"], "/home/kphp/www")
        self.assertEqual(profile["encoding"], "windows-1251")

    def test_init_refuses_overwrite(self):
        (self.cwd / ".gensync").write_text("profiles: []\n", encoding="utf-8")
        rc, out, err = run_gensync("init", "--server", "myhost.com", "--remote", "www", cwd=self.cwd)
        self.assertNotEqual(rc, 0)
        self.assertIn("already exists", err)

    def test_init_force_overwrites(self):
        (self.cwd / ".gensync").write_text("profiles: []\n", encoding="utf-8")
        rc, out, err = run_gensync("init", "--server", "newhost.com", "--remote", "www",
                                   "--force", cwd=self.cwd)
        self.assertEqual(rc, 0, msg=f"stderr: {err}")
        self.assertIn("newhost.com", (self.cwd / ".gensync").read_text(encoding="utf-8"))

    def test_init_dry_run_does_not_write(self):
        rc, out, err = run_gensync("init", "--server", "myhost.com", "--remote", "www",
                                   "--dry-run", cwd=self.cwd)
        self.assertEqual(rc, 0, msg=f"stderr: {err}")
        self.assertFalse((self.cwd / ".gensync").exists())
        self.assertIn("dry-run", out)


class TestCommandsNeedConfig(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.cwd = Path(self.tmpdir.name)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_update_without_project_file(self):
        from gensync.config import find_project_file
        if find_project_file(self.cwd) is not None:
            self.skipTest("a .gensync exists above the temp directory")
        rc, out, err = run_gensync("update", cwd=self.cwd)
        self.assertEqual(rc, 1)
        self.assertIn("no .gensync file found", err)

    def test_run_local_command(self):
        (self.cwd / ".gensync").write_text(
            "profiles:\n  - name: default\n    local_root: .\n", encoding="utf-8")
        code = "import os, sys; print(os.path.basename(os.getcwd())); sys.exit(4)"
        rc, out, err = run_gensync("run", "--", sys.executable, "-c", code, cwd=self.cwd)
        self.assertEqual(rc, 4, msg=f"stderr: {err}")
        self.assertIn(self.cwd.resolve().name, out)


if __name__ == "__main__":
    unittest.main()
