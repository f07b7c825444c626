"""
Configuration constants for gensync
"""
import os
from pathlib import Path, PurePosixPath
from typing import Optional

import yaml

# ══════════════════════════════════════════════════════════════════════════════
#  DEFAULTS  ── overridden by YAML config or apply_profile()
# ══════════════════════════════════════════════════════════════════════════════

SSH_HOST = "example.com"
SSH_PORT = 22
SSH_USER = "root"
# Path to your private key, or None to use ssh-agent / ~/.ssh/id_*
SSH_KEY_PATH: Optional[str] = None
SSH_PASSWORD: Optional[str] = None  # only if you use password auth

LOCAL_ROOT = Path(".")
REMOTE_ROOT = PurePosixPath("/")

# Retry settings (SSH connection only, commands are never retried)
RETRY_MAX = 3
RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt

# Command timeouts (seconds)
LOCAL_TIMEOUT = 30
REMOTE_TIMEOUT = 3
# git status / md5sum over a large tree is slower than a single command
REMOTE_SCAN_TIMEOUT = 60

# Encoding declared for remote files, and the legacy one used when the
# declared name is not a known codec.
DEFAULT_ENCODING = "utf-8"
FALLBACK_ENCODING = "windows-1251"

# How many leading lines the autogenerated heuristic looks at
CLASSIFY_LINES = 15

PROJECT_FILE = ".gensync"


# ══════════════════════════════════════════════════════════════════════════════
#  GLOBAL CONFIG FILE  ── $XDG_CONFIG_HOME/gensync/config.yaml
# ══════════════════════════════════════════════════════════════════════════════

def get_global_config_dir() -> Path:
    """Return the global config directory for gensync."""
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg) / "gensync"
    if os.name == "nt":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "gensync"
    return Path.home() / ".config" / "gensync"


def load_global_config() -> dict:
    """Load global config; a missing or broken file means no defaults."""
    cfg_path = get_global_config_dir() / "config.yaml"
    if not cfg_path.is_file():
        return {}
    try:
        with cfg_path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return {}


# ══════════════════════════════════════════════════════════════════════════════
#  PROJECT CONFIG FILE  ── .gensync (searched upward)
# ══════════════════════════════════════════════════════════════════════════════

def find_project_file(start: Optional[Path] = None) -> Optional[Path]:
    """
    Search upward from *start* (default: cwd) for a .gensync YAML file.
    Returns the Path if found, or None if no .gensync exists in any parent.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / PROJECT_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_project_file(path: Path) -> dict:
    """Parse a .gensync YAML file and return its contents as a dict."""
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_profile(data: dict, profile_name: str = "default") -> dict:
    """
    Extract a named profile from a .gensync or config.yaml data dict.
    Falls back to the first profile if the named one is not found.
    Returns a flat profile dict merged with top-level defaults.
    """
    defaults = data.get("defaults", {})
    profiles = data.get("profiles", [])
    if not profiles:
        return defaults.copy()
    profile = next((p for p in profiles if p.get("name") == profile_name), None)
    if profile is None:
        profile = profiles[0]
    merged = defaults.copy()
    merged.update(profile)
    return merged


# ══════════════════════════════════════════════════════════════════════════════
#  APPLY PROFILE  ── mutates module-level variables
# ══════════════════════════════════════════════════════════════════════════════

def apply_profile(profile: dict, base_dir: Optional[Path] = None):
    """
    Apply a profile dict to the module-level config variables.
    Supports keys: server, port, user, ssh_key, ssh_password, local_root,
                   remote_root, base_remote (prepended to remote_root if
                   remote_root is relative), remote_timeout, encoding.

    A relative local_root is resolved against *base_dir* (the directory
    holding the .gensync file) when given.
    """
    global SSH_HOST, SSH_PORT, SSH_USER, SSH_KEY_PATH, SSH_PASSWORD
    global LOCAL_ROOT, REMOTE_ROOT, REMOTE_TIMEOUT, DEFAULT_ENCODING

    if "server" in profile:
        SSH_HOST = str(profile["server"])
    if "port" in profile:
        SSH_PORT = int(profile["port"])
    if "user" in profile:
        SSH_USER = str(profile["user"])
    elif "username" in profile:
        SSH_USER = str(profile["username"])
    if "ssh_key" in profile:
        SSH_KEY_PATH = str(profile["ssh_key"]) if profile["ssh_key"] else None
    if "ssh_password" in profile:
        SSH_PASSWORD = str(profile["ssh_password"]) if profile["ssh_password"] else None
    if "local_root" in profile:
        lr = Path(profile["local_root"]).expanduser()
        if not lr.is_absolute() and base_dir is not None:
            lr = base_dir / lr
        LOCAL_ROOT = lr.resolve()
    if "remote_root" in profile:
        rr = str(profile["remote_root"])
        base = str(profile.get("base_remote", "")).rstrip("/")
        if base and not rr.startswith("/"):
            rr = f"{base}/{rr}"
        REMOTE_ROOT = PurePosixPath(rr)
    if "remote_timeout" in profile:
        REMOTE_TIMEOUT = float(profile["remote_timeout"])
    if "encoding" in profile and profile["encoding"]:
        DEFAULT_ENCODING = str(profile["encoding"])
