from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _find_repo_root(start: Path) -> Optional[Path]:
    """
    Walk upward until we find pyproject.toml or .git.
    """
    start = start.resolve()
    for p in (start, *start.parents):
        if (p / "pyproject.toml").exists() or (p / ".git").exists():
            return p
    return None


@lru_cache(maxsize=1)
def repo_root() -> Path:
    """Best-effort repository root discovery.

    Order of precedence:
      1) TA_REPO_ROOT (explicit override)
      2) walk upward from current working directory
      3) walk upward from this module file's directory
    """
    explicit = os.getenv("TA_REPO_ROOT")
    if explicit:
        p = Path(explicit).expanduser().resolve()
        if not p.exists() or not p.is_dir():
            raise RuntimeError(f"TA_REPO_ROOT does not exist or is not a directory: {p}")
        return p

    cwd = Path.cwd().resolve()
    root = _find_repo_root(cwd)
    if root:
        return root

    here_dir = Path(__file__).resolve().parent
    root = _find_repo_root(here_dir)
    if root:
        return root

    # Fallback: typical layout (repo/src/ta_config/settings.py)
    if len(here_dir.parents) >= 2:
        return here_dir.parents[1]

    return cwd


@lru_cache(maxsize=1)
def load_env_once() -> Optional[Path]:
    """
    Load dotenv exactly once. Precedence:
      1) TA_ENV_FILE (explicit path)
      2) repo-root/.env
      3) repo-root/config/.env
    """
    explicit = os.getenv("TA_ENV_FILE")
    candidates = []

    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.append(repo_root() / ".env")
    candidates.append(repo_root() / "config" / ".env")

    for p in candidates:
        p = p.resolve()
        if p.exists() and p.is_file():
            # Do NOT override already-set environment variables
            load_dotenv(dotenv_path=str(p), override=False)
            return p

    return None


def config_dir() -> Path:
    """
    Config folder containing providers.json. Override with TA_CONFIG_DIR.
    """
    p = os.getenv("TA_CONFIG_DIR")
    if p:
        return Path(p).expanduser().resolve()
    return (repo_root() / "config").resolve()


def providers_path() -> Path:
    """
    Provider list for the gateway. Override with TA_PROVIDERS_PATH.
    """
    p = os.getenv("TA_PROVIDERS_PATH")
    if p:
        return Path(p).expanduser().resolve()
    return (config_dir() / "providers.json").resolve()


def facts_path() -> Path:
    """
    Reference facts dataset. Override with TA_FACTS_PATH; defaults to the
    facts.json shipped inside the ta_facts package.
    """
    p = os.getenv("TA_FACTS_PATH")
    if p:
        return Path(p).expanduser().resolve()
    import ta_facts

    return (Path(ta_facts.__file__).resolve().parent / "facts.json").resolve()


def similarity_threshold(default: float) -> float:
    """
    Acceptance threshold for approximate fact matches (TA_FACTS_THRESHOLD).
    Unparsable or out-of-range values fall back to `default`.
    """
    raw = os.getenv("TA_FACTS_THRESHOLD")
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logging.getLogger(__name__).warning("Ignoring invalid TA_FACTS_THRESHOLD=%r", raw)
        return default
    if not 0.0 <= value <= 1.0:
        logging.getLogger(__name__).warning("TA_FACTS_THRESHOLD=%s outside [0, 1]; using %s", value, default)
        return default
    return value


def telemetry_dir() -> Path:
    """
    Default telemetry dir. Override with TA_TELEMETRY_DIR.
    """
    p = os.getenv("TA_TELEMETRY_DIR")
    if p:
        return Path(p).expanduser().resolve()
    return (repo_root() / "artifacts" / "telemetry").resolve()


def telemetry_disabled() -> bool:
    return os.getenv("TA_DISABLE_TELEMETRY", "0").strip().lower() in {"1", "true", "yes"}


def configure_logging() -> None:
    """
    Configure logging explicitly. No import-time side effects.
    Idempotent: if logging is already configured, do nothing.
    Handlers write to stderr; stdout carries the stdio transport.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    level_name = os.getenv("TA_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = os.getenv(
        "TA_LOG_FORMAT",
        "%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logging.basicConfig(level=level, format=fmt)


def init_runtime(*, configure_logs: bool = True, load_env: bool = True) -> None:
    """
    Call this from entrypoints only (servers, scripts).
    """
    if load_env:
        load_env_once()
    if configure_logs:
        configure_logging()
