"""Configuration management with XDG paths, env-var expansion, and atomic writes.

This module handles all persistent configuration for aiq:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.aiq/`` on macOS and Windows. ``$AIQ_CONFIG_DIR`` overrides the
  config directory everywhere. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Configuration document** -- a single :class:`~aiq.models.Config` JSON
  file loaded once per process by :func:`load_config` and handed to the
  runner explicitly. There is no cached global copy.
* **Environment expansion** -- string values may contain ``${VAR}`` or
  ``${VAR:-default}``; :func:`resolve_env_vars` expands them recursively
  at load time.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) so a crash never leaves a truncated document behind.
"""

from __future__ import annotations

import json
import os
import platform
import re
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from aiq.exceptions import ConfigError
from aiq.models import Config

_APP_NAME = "aiq"
_CONFIG_FILENAME = "config.json"
_CONFIG_DIR_ENV = "AIQ_CONFIG_DIR"

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True on platforms that follow the XDG Base Directory layout (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    ``$AIQ_CONFIG_DIR`` wins when set. Otherwise, on Linux/BSD:
    ``$XDG_CONFIG_HOME/aiq/`` (default ``~/.config/aiq/``); on
    macOS/Windows: ``~/.aiq/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    override = os.environ.get(_CONFIG_DIR_ENV, "")
    if override:
        path = Path(override).expanduser()
    elif _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (history log, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/aiq/`` (default ``~/.local/share/aiq/``).
    On macOS/Windows: ``~/.aiq/data/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def config_path() -> Path:
    """Path to the configuration document."""
    return get_config_dir() / _CONFIG_FILENAME


def config_exists(path: Optional[Path] = None) -> bool:
    """Check whether the configuration document exists on disk."""
    return (path or config_path()).is_file()


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is removed and the original file is left untouched.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Environment expansion ---


def expand_env_string(value: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` tokens in a single string.

    An unset *or empty* variable falls back to the default, and to ``""``
    when there is no default.
    """
    env = os.environ if environ is None else environ

    def _replace(match: re.Match[str]) -> str:
        var_name, _, default = match.group(1).partition(":-")
        return env.get(var_name) or default

    return _ENV_VAR_RE.sub(_replace, value)


def resolve_env_vars(value: Any, environ: Optional[Mapping[str, str]] = None) -> Any:
    """Recursively expand environment tokens in strings, lists, and dicts.

    Non-string scalars are returned unchanged. Dict keys are not expanded.

    Args:
        value: A parsed JSON value.
        environ: Variable lookup; defaults to ``os.environ``.

    Returns:
        A new structure with every string expanded.
    """
    if isinstance(value, str):
        return expand_env_string(value, environ)
    if isinstance(value, list):
        return [resolve_env_vars(item, environ) for item in value]
    if isinstance(value, dict):
        return {key: resolve_env_vars(item, environ) for key, item in value.items()}
    return value


# --- Load / save ---


def load_config(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """Load, expand, and validate the configuration document.

    Args:
        path: Explicit document path; defaults to :func:`config_path`.
        environ: Variable lookup used for ``${VAR}`` expansion.

    Returns:
        The validated :class:`~aiq.models.Config`.

    Raises:
        ConfigError: If the file is missing, unreadable, not JSON, or fails
            validation.
    """
    path = path or config_path()
    if not path.is_file():
        raise ConfigError(
            f"Config file not found at {path}",
            hint='Run "aiq config init" to create one',
        )
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(
            f"Invalid JSON in config file {path}: {exc}",
            hint='Fix the file by hand or run "aiq config init --force"',
        ) from exc

    try:
        return Config.model_validate(resolve_env_vars(data, environ))
    except ValidationError as exc:
        raise ConfigError(
            f"Invalid config at {path}: {exc}",
            hint='Run "aiq config validate" after fixing the reported fields',
        ) from exc


def save_config(config: Config, path: Optional[Path] = None) -> Path:
    """Persist the configuration document atomically.

    Returns:
        The path that was written.
    """
    path = path or config_path()
    data = config.model_dump(mode="json", by_alias=True, exclude_none=True)
    atomic_write(path, json.dumps(data, indent=2) + "\n")
    return path


# --- Starter document ---


def default_config(provider: Mapping[str, Any], history_enabled: bool = True) -> Config:
    """Build the starter configuration written by ``aiq config init``.

    Args:
        provider: Provider section, usually the registered backend's
            default config merged with the user's answers.
        history_enabled: Whether to record executed commands.

    Returns:
        A :class:`~aiq.models.Config` with the bundled commands.
    """
    return Config.model_validate(
        {
            "version": "1.0",
            "provider": dict(provider),
            "editor": "${EDITOR:-nano}",
            "commands": [
                {
                    "name": "summarize",
                    "description": "Summarize text concisely",
                    "prompt": "Summarize this in {maxWords} words or less:\n\n{input}",
                    "params": {
                        "maxWords": {
                            "type": "number",
                            "default": 50,
                            "alias": "w",
                            "description": "Maximum words for summary",
                        }
                    },
                },
                {
                    "name": "explain",
                    "description": "Explain code or concept clearly",
                    "prompt": "Explain this clearly:\n\n{input}",
                },
                {
                    "name": "cmd",
                    "description": "Get terminal command only",
                    "prompt": "Provide ONLY the terminal command for: {input}\n"
                    "No explanation, just the command.",
                },
                {
                    "name": "fix",
                    "description": "Fix errors in code or text",
                    "prompt": "Fix any errors in this and return only the corrected version:"
                    "\n\n{input}",
                },
            ],
            "history": {"enabled": history_enabled, "maxEntries": 100},
        }
    )
