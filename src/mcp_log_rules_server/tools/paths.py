"""Path validation for files the server is asked to read."""

from __future__ import annotations

import os
from pathlib import Path

ALLOWED_LOG_SUFFIXES = {".log", ".txt"}
BASE_DIR_ENV = "LOG_RULES_BASE_DIR"


def base_dir() -> Path:
    """Return the resolved base directory for log files."""
    raw = os.getenv(BASE_DIR_ENV, os.getcwd())
    return Path(raw).expanduser().resolve()


def _effective_suffix(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix == ".gz":
        suffix = path.with_suffix("").suffix.lower()
    return suffix


def resolve_log_path(path: str) -> Path:
    """Resolve a log path under the base directory and check its suffix."""
    base = base_dir()
    p = Path(path).expanduser()
    if not p.is_absolute():
        p = base / p
    p = p.resolve()
    if base not in p.parents and p != base:
        raise ValueError(f"Path escapes base dir ({BASE_DIR_ENV}={base})")
    if not p.is_file():
        raise FileNotFoundError(f"Log file not found: {p}")
    if _effective_suffix(p) not in ALLOWED_LOG_SUFFIXES:
        allowed = ", ".join(sorted(ALLOWED_LOG_SUFFIXES))
        raise ValueError(f"File type not allowed. Allowed: {allowed} (optionally .gz).")
    return p
