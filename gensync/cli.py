#!/usr/bin/env python3
"""
gensync  —  keep autogenerated files of a local checkout in step with the server
================================================================================

Subcommands:
  init      Create a .gensync config file in the current directory.
  status    Show whether local and remote repositories are in sync.
  update    Download autogenerated files that changed on the server.
  run       Run a command locally or in the remote project root.
  revert    Move a file renamed on the server back to its original name.
  rename    Apply a rename made on the server to the local checkout.

Run 'gensync <subcommand> --help' for more details.
"""
import sys
import argparse
from pathlib import Path


def _yq(value: str) -> str:
    """Wrap a string in YAML single quotes, escaping embedded single quotes."""
    return "'" + value.replace("'", "''") + "'"


def _apply_project_config(args):
    """Load the nearest .gensync and apply the selected profile, or exit."""
    import gensync.config as _cfg
    from gensync.utils.logging import is_verbose, set_verbose

    set_verbose(getattr(args, "verbose", False))

    project_file = _cfg.find_project_file()
    if project_file is None:
        print("error: no .gensync file found in this directory or any parent.", file=sys.stderr)
        print("Run 'gensync init' to create one.", file=sys.stderr)
        sys.exit(1)

    if is_verbose():
        print(f"[config] Using {project_file}")

    data = _cfg.load_project_file(project_file)
    profile = _cfg.get_profile(data, args.profile or "default")
    _cfg.apply_profile(profile, base_dir=project_file.parent)
    return profile


# ── init ─────────────────────────────────────────────────────────────────────

def cmd_init(args):
    """Create a .gensync profile file in the current directory."""
    from gensync import config as _cfg

    target = Path.cwd() / _cfg.PROJECT_FILE

    if target.exists() and not args.force:
        print(f"error: {_cfg.PROJECT_FILE} already exists in {Path.cwd()}", file=sys.stderr)
        print("Use --force to overwrite.", file=sys.stderr)
        sys.exit(1)

    g_defaults = _cfg.load_global_config().get("defaults", {})

    local_root = str(Path(args.local or Path.cwd()).expanduser())

    remote_root = args.remote
    if not remote_root:
        default_rr = Path.cwd().name
        if sys.stdin.isatty():
            entered = input(f"Remote project root (relative to base_remote) [{default_rr}]: ").strip()
            remote_root = entered or default_rr
        else:
            remote_root = default_rr

    server = args.server or g_defaults.get("server", "example.com")
    if not args.server and sys.stdin.isatty():
        val = input(f"Server hostname [{server}]: ").strip()
        if val:
            server = val

    user = args.user or g_defaults.get("user", "root")
    port = args.port or int(g_defaults.get("port", 22))
    base_remote = args.base_remote or g_defaults.get("base_remote", "")
    profile_name = args.profile or "default"

    # Always use forward slashes in paths to avoid YAML backslash escape issues
    local_root_yaml = local_root.replace("\\", "/")

    lines = [
        "# .gensync — gensync project configuration",
        "#",
        "# profiles: list of server profiles for this project.",
        "# remote_root is relative to base_remote when it does not start with '/'.",
        "profiles:",
        f"  - name: {profile_name}",
        f"    server: {_yq(server)}",
        f"    port: {port}",
        f"    user: {_yq(user)}",
        f"    local_root: {_yq(local_root_yaml)}",
        f"    remote_root: {_yq(remote_root)}",
        f"    remote_timeout: {_cfg.REMOTE_TIMEOUT}",
        f"    encoding: {_yq(args.encoding or _cfg.DEFAULT_ENCODING)}",
    ]
    if base_remote:
        lines += [
            "defaults:",
            f"  base_remote: {_yq(base_remote)}",
        ]
    content = "\n".join(lines) + "\n"

    if args.dry_run:
        print(f"[dry-run] Would write {target}:")
        print(content)
        return

    target.write_text(content, encoding="utf-8")
    print(f"Created {target}")
    if args.verbose:
        print(content)


# ── status ────────────────────────────────────────────────────────────────────

def cmd_status(args):
    """Show the sync state and the files that differ."""
    import gensync.config as _cfg
    from gensync.core.classifier import is_autogenerated
    from gensync.core.command_runner import CommandRunner
    from gensync.core.sync_checker import SyncStateChecker
    from gensync.errors import SyncCheckError
    from gensync.models import SyncState

    profile = _apply_project_config(args)
    runner = CommandRunner()
    try:
        checker = SyncStateChecker.for_project(runner)
        try:
            state = checker.current_state()
        except SyncCheckError as exc:
            print(f"error: {exc}", file=sys.stderr)
            sys.exit(1)

        print(f"\nProfile : {profile.get('name', 'default')}")
        print(f"Local   : {_cfg.LOCAL_ROOT}")
        print(f"Remote  : {_cfg.SSH_USER}@{_cfg.SSH_HOST}:{_cfg.SSH_PORT}:{_cfg.REMOTE_ROOT}")
        print(f"State   : {state.value}")

        if state is SyncState.COMMITS_NOT_SYNC:
            print("\nLocal and remote HEAD differ, push or pull commits first.")
            return
        if state is SyncState.IN_SYNC:
            return

        print()
        for entry in checker.get_diff_entries():
            f = entry.remote_file
            if f.is_not_found and f.local_file is not None:
                local = f.local_file
                generated = is_autogenerated(f.path, lambda: local.read_text("utf-8", errors="replace"))
            else:
                generated = is_autogenerated(f.path, lambda: f.content)
            name = f"{f.orig_path} → {f.path}" if f.orig_path else f.path
            mark = "  [autogenerated]" if generated else ""
            print(f"  {entry.status.value:<8} {name}{mark}")
    finally:
        runner.close()


# ── update ────────────────────────────────────────────────────────────────────

def cmd_update(args):
    """Download autogenerated files that changed on the server."""
    from gensync.core.command_runner import CommandRunner
    from gensync.operations.reconciler import update_autogenerated_files

    _apply_project_config(args)
    runner = CommandRunner()

    def on_ready(added: int, changed: int, deleted: int):
        print()
        if added == 0 and changed == 0 and deleted == 0:
            if not args.quiet:
                print("Autogenerated files updated: No changes")
            return
        print(f"Autogenerated files updated: Changed: {changed}, Added: {added}, Deleted: {deleted}")

    try:
        update_autogenerated_files(on_ready, runner=runner)
    finally:
        runner.close()


# ── run ───────────────────────────────────────────────────────────────────────

def cmd_run(args):
    """Run a command and exit with its status."""
    from gensync.core.command_runner import CommandRunner, Target

    command = list(args.cmd)
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        print("error: a command is required.", file=sys.stderr)
        sys.exit(1)

    _apply_project_config(args)
    runner = CommandRunner()
    target = Target.REMOTE if args.remote else Target.LOCAL

    def listener(line: str, is_stderr: bool):
        print(line, file=sys.stderr if is_stderr else sys.stdout, flush=True)

    try:
        out = runner.run(target, command, timeout=args.timeout,
                         listener=listener if args.stream else None)
    except KeyboardInterrupt:
        runner.stop()
        sys.exit(130)
    finally:
        runner.close()

    if not args.stream:
        if out.stdout:
            print(out.stdout)
        if out.stderr:
            print(out.stderr, file=sys.stderr)
    sys.exit(out.exit_code)


# ── revert / rename ───────────────────────────────────────────────────────────

def _renamed_file(checker, path: str):
    from gensync.models import SyncState

    if checker.current_state() is not SyncState.FILES_NOT_SYNC:
        print("error: local and remote files are in sync.", file=sys.stderr)
        sys.exit(1)
    remote_file = checker.find_diff_file(path)
    if remote_file is None or remote_file.orig_path is None:
        print(f"error: {path} is not renamed on the server.", file=sys.stderr)
        sys.exit(1)
    return remote_file


def cmd_revert(args):
    """Rename a remote file back to its original name and restore its content."""
    _rename_action(args, revert=True)


def cmd_rename(args):
    """Rename the local file to the name it has on the server."""
    _rename_action(args, revert=False)


def _rename_action(args, revert: bool):
    from gensync.core.command_runner import CommandRunner
    from gensync.core.sync_checker import SyncStateChecker
    from gensync.errors import SyncCheckError
    from gensync.operations.file_actions import FileActions

    _apply_project_config(args)
    runner = CommandRunner()
    try:
        checker = SyncStateChecker.for_project(runner)
        try:
            remote_file = _renamed_file(checker, args.path)
        except SyncCheckError as exc:
            print(f"error: {exc}", file=sys.stderr)
            sys.exit(1)
        actions = FileActions(runner)
        if revert:
            outcome = actions.revert_remote_file_to_original(remote_file)
        else:
            outcome = actions.rename_local_file(remote_file)
        checker.mark_dirty()
    finally:
        runner.close()
    sys.exit(0 if outcome.ok else 1)


# ── main ──────────────────────────────────────────────────────────────────────

def _add_common(p: argparse.ArgumentParser):
    p.add_argument("--profile", metavar="NAME", default="default",
                   help="Profile to use (default: default)")
    p.add_argument("-v", "--verbose", action="store_true",
                   help="Show extra output")


def main():
    """CLI entry point for gensync"""
    parser = argparse.ArgumentParser(
        prog="gensync",
        description="Keep autogenerated files of a local checkout in step with the server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # ── init ──────────────────────────────────────────────────────────────────
    init_p = subparsers.add_parser(
        "init",
        help="Create a .gensync config file in the current directory",
        description="Create a .gensync YAML config file for this project.",
    )
    init_p.add_argument("--local", metavar="PATH",
                        help="Local project root (default: current directory)")
    init_p.add_argument("--remote", metavar="PATH",
                        help="Remote project root (relative to base_remote or absolute)")
    init_p.add_argument("--server", metavar="HOST",
                        help="Remote server hostname or IP")
    init_p.add_argument("--user", metavar="NAME",
                        help="SSH username (default: root)")
    init_p.add_argument("--port", type=int, metavar="N",
                        help="SSH port (default: 22)")
    init_p.add_argument("--base-remote", metavar="PATH",
                        help="Base remote path prepended to relative remote roots")
    init_p.add_argument("--encoding", metavar="NAME",
                        help="Encoding of files on the server (default: utf-8)")
    init_p.add_argument("--force", action="store_true",
                        help="Overwrite existing .gensync")
    init_p.add_argument("-n", "--dry-run", action="store_true",
                        help="Preview without writing files")
    _add_common(init_p)

    # ── status ────────────────────────────────────────────────────────────────
    status_p = subparsers.add_parser(
        "status",
        help="Show whether local and remote are in sync",
        description="Compare HEAD and working trees of the local and remote repositories.",
    )
    _add_common(status_p)

    # ── update ────────────────────────────────────────────────────────────────
    update_p = subparsers.add_parser(
        "update",
        help="Download autogenerated files changed on the server",
        description="Create, rewrite or delete local autogenerated files to match the server.",
    )
    update_p.add_argument("-q", "--quiet", action="store_true",
                          help="Print nothing when there are no changes")
    _add_common(update_p)

    # ── run ───────────────────────────────────────────────────────────────────
    run_p = subparsers.add_parser(
        "run",
        help="Run a command locally or on the server",
        description="Run a command in the local or the remote project root.",
    )
    run_p.add_argument("-r", "--remote", action="store_true",
                       help="Run on the server instead of locally")
    run_p.add_argument("-t", "--timeout", type=float, metavar="SEC", default=None,
                       help="Seconds to wait for the command")
    run_p.add_argument("-s", "--stream", action="store_true",
                       help="Print output lines as they arrive")
    _add_common(run_p)
    run_p.add_argument("cmd", nargs=argparse.REMAINDER,
                       help="Command and its arguments")

    # ── revert / rename ───────────────────────────────────────────────────────
    revert_p = subparsers.add_parser(
        "revert",
        help="Undo a rename made on the server",
        description="Move a renamed remote file back and restore its content from the local copy.",
    )
    revert_p.add_argument("path", metavar="PATH", help="Path of the renamed file")
    _add_common(revert_p)

    rename_p = subparsers.add_parser(
        "rename",
        help="Apply a server-side rename locally",
        description="git mv the local file to the name it has on the server.",
    )
    rename_p.add_argument("path", metavar="PATH", help="Path of the renamed file")
    _add_common(rename_p)

    args = parser.parse_args()

    if args.command == "init":
        cmd_init(args)
    elif args.command == "status":
        cmd_status(args)
    elif args.command == "update":
        cmd_update(args)
    elif args.command == "run":
        cmd_run(args)
    elif args.command == "revert":
        cmd_revert(args)
    elif args.command == "rename":
        cmd_rename(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
