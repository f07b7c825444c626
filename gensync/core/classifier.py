"""
Heuristic detection of autogenerated files
"""
from typing import Callable

from .. import config as _cfg
from ..utils.logging import vlog

AUTOGENERATED_DIR = "/autogenerated/"

DIRECTIVE_PHRASES = ("do not edit", "don't edit", "do not modify", "don't modify")
PROVENANCE_PHRASES = ("auto-generated", "autogenerated", "generated by")

_COMMENT_PREFIXES = ("//", "/*", " *")


def looks_like_comment(line: str) -> bool:
    """Lines are compared as-is: an indented '//' does not count."""
    return line.startswith(_COMMENT_PREFIXES)


def in_autogenerated_dir(path: str) -> bool:
    norm = "/" + path.replace("\\", "/").lower()
    return AUTOGENERATED_DIR in norm


def is_autogenerated(path: str, content_supplier: Callable[[], str]) -> bool:
    """
    True if the file at *path* looks generated.

    A path inside an ``autogenerated`` directory is enough on its own and
    *content_supplier* is never called. Otherwise the first CLASSIFY_LINES
    comment lines must contain both a "do not edit" style directive and a
    "generated by" style provenance note.
    """
    if in_autogenerated_dir(path):
        return True

    try:
        content = content_supplier()
    except Exception as exc:
        vlog(f"  [classify] {path}: cannot read content ({exc}), not autogenerated")
        return False

    do_not_edit = False
    generated = False
    for line in (content or "").splitlines()[:_cfg.CLASSIFY_LINES]:
        line = line.lower()
        if not looks_like_comment(line):
            continue
        do_not_edit = do_not_edit or any(p in line for p in DIRECTIVE_PHRASES)
        generated = generated or any(p in line for p in PROVENANCE_PHRASES)

    return do_not_edit and generated
