"""Configuration loading and directory resolution for xtask."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

try:  # pragma: no cover - exercised on Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for Python 3.9/3.10
    import tomli as tomllib  # type: ignore[no-redef]

CONFIG_DIR_NAME = ".xtask_config"
CONFIG_FILE_NAME = "config.toml"
LOGS_DIR_NAME = "logs"

DEFAULT_LOGS_ENABLED = True
DEFAULT_LOGS_FORMAT = "jsonl"
DEFAULT_LOGS_MAX_FILE_BYTES = 10 * 1024 * 1024
DEFAULT_LOGS_MAX_FILES = 5
DEFAULT_LOGS_REDACTION = "default"
DEFAULT_NOTICES = True
DEFAULT_TRACE_EMITS = False
ALLOWED_LOG_FORMATS = ("jsonl",)
ALLOWED_LOG_REDACTION = ("default", "none", "strict")


class ProjectConfigError(RuntimeError):
    """Raised when project configuration is missing or invalid."""


@dataclass
class ProjectConfig:
    logs_enabled: bool = DEFAULT_LOGS_ENABLED
    logs_format: str = DEFAULT_LOGS_FORMAT
    logs_max_file_bytes: int = DEFAULT_LOGS_MAX_FILE_BYTES
    logs_max_files: int = DEFAULT_LOGS_MAX_FILES
    logs_redaction: str = DEFAULT_LOGS_REDACTION
    notices: bool = DEFAULT_NOTICES
    trace_emits: bool = DEFAULT_TRACE_EMITS


@dataclass
class Settings:
    """Resolved settings for one registry.

    A bare ``Settings()`` has no config root, so the debug log stays off and
    nothing is written to disk.
    """

    project_root: Optional[Path] = None
    config_root: Optional[Path] = None
    logs_enabled: bool = DEFAULT_LOGS_ENABLED
    logs_format: str = DEFAULT_LOGS_FORMAT
    logs_max_file_bytes: int = DEFAULT_LOGS_MAX_FILE_BYTES
    logs_max_files: int = DEFAULT_LOGS_MAX_FILES
    logs_redaction: str = DEFAULT_LOGS_REDACTION
    notices: bool = DEFAULT_NOTICES
    trace_emits: bool = DEFAULT_TRACE_EMITS

    @property
    def logs_dir(self) -> Optional[Path]:
        if self.config_root is None:
            return None
        return self.config_root / LOGS_DIR_NAME


def resolve_project_root(workspace_dir: Optional[Path] = None) -> Path:
    return (workspace_dir or Path.cwd()).resolve()


def resolve_project_config_root(workspace_dir: Optional[Path] = None) -> Path:
    return resolve_project_root(workspace_dir) / CONFIG_DIR_NAME


def project_config_exists(workspace_dir: Optional[Path] = None) -> bool:
    config_root = resolve_project_config_root(workspace_dir)
    return config_root.is_dir() and (config_root / CONFIG_FILE_NAME).is_file()


def _safe_positive_int_or_default(value: object, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        converted = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    if converted <= 0:
        return default
    return converted


def _safe_bool(value: object, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    return default


def _safe_choice(value: object, default: str, allowed: tuple) -> str:
    normalized = str(value or default).strip().lower()
    if normalized not in allowed:
        return default
    return normalized


def _section(data: Dict[str, object], key: str) -> Dict[str, object]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def _parse_project_config_data(data: Dict[str, object]) -> ProjectConfig:
    logs = _section(data, "logs")
    diagnostics = _section(data, "diagnostics")

    return ProjectConfig(
        logs_enabled=_safe_bool(logs.get("enabled"), DEFAULT_LOGS_ENABLED),
        logs_format=_safe_choice(logs.get("format"), DEFAULT_LOGS_FORMAT, ALLOWED_LOG_FORMATS),
        logs_max_file_bytes=_safe_positive_int_or_default(
            logs.get("max_file_bytes"),
            DEFAULT_LOGS_MAX_FILE_BYTES,
        ),
        logs_max_files=_safe_positive_int_or_default(logs.get("max_files"), DEFAULT_LOGS_MAX_FILES),
        logs_redaction=_safe_choice(
            logs.get("redaction"),
            DEFAULT_LOGS_REDACTION,
            ALLOWED_LOG_REDACTION,
        ),
        notices=_safe_bool(diagnostics.get("notices"), DEFAULT_NOTICES),
        trace_emits=_safe_bool(diagnostics.get("trace_emits"), DEFAULT_TRACE_EMITS),
    )


def _render_project_config(config: ProjectConfig) -> str:
    lines: List[str] = [
        "[logs]",
        "enabled = {0}".format(str(bool(config.logs_enabled)).lower()),
        'format = "{0}"'.format(
            _safe_choice(config.logs_format, DEFAULT_LOGS_FORMAT, ALLOWED_LOG_FORMATS)
        ),
        "max_file_bytes = {0}".format(
            _safe_positive_int_or_default(config.logs_max_file_bytes, DEFAULT_LOGS_MAX_FILE_BYTES)
        ),
        "max_files = {0}".format(
            _safe_positive_int_or_default(config.logs_max_files, DEFAULT_LOGS_MAX_FILES)
        ),
        'redaction = "{0}"'.format(
            _safe_choice(config.logs_redaction, DEFAULT_LOGS_REDACTION, ALLOWED_LOG_REDACTION)
        ),
        "",
        "[diagnostics]",
        "notices = {0}".format(str(bool(config.notices)).lower()),
        "trace_emits = {0}".format(str(bool(config.trace_emits)).lower()),
        "",
    ]
    return "\n".join(lines)


def initialize_project_config(workspace_dir: Optional[Path] = None, force: bool = False) -> Path:
    config_root = resolve_project_config_root(workspace_dir)

    if config_root.exists():
        if not force:
            raise ProjectConfigError(
                "configuration directory already exists: {0}".format(config_root)
            )
        shutil.rmtree(config_root)

    (config_root / LOGS_DIR_NAME).mkdir(parents=True, exist_ok=True)
    (config_root / CONFIG_FILE_NAME).write_text(
        _render_project_config(ProjectConfig()),
        encoding="utf-8",
    )
    return config_root


def load_project_config(
    config_root: Optional[Path] = None,
    workspace_dir: Optional[Path] = None,
) -> ProjectConfig:
    resolved_root = (config_root or resolve_project_config_root(workspace_dir)).resolve()
    config_file = resolved_root / CONFIG_FILE_NAME
    if not resolved_root.is_dir() or not config_file.is_file():
        raise ProjectConfigError("missing project config directory: {0}".format(resolved_root))

    try:
        parsed = tomllib.loads(config_file.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ProjectConfigError("invalid config file: {0}".format(config_file)) from exc

    return _parse_project_config_data(parsed)


def save_project_config(
    config: ProjectConfig,
    config_root: Optional[Path] = None,
    workspace_dir: Optional[Path] = None,
) -> Path:
    resolved_root = (config_root or resolve_project_config_root(workspace_dir)).resolve()
    if not resolved_root.is_dir():
        raise ProjectConfigError("missing project config directory: {0}".format(resolved_root))
    config_file = resolved_root / CONFIG_FILE_NAME
    config_file.write_text(_render_project_config(config), encoding="utf-8")
    return config_file


def load_settings(
    workspace_dir: Optional[Path] = None,
    notices: Optional[bool] = None,
    trace_emits: Optional[bool] = None,
) -> Settings:
    """Resolve settings from project config + explicit overrides."""

    project_root = resolve_project_root(workspace_dir)
    config_root = resolve_project_config_root(project_root)
    project_config = load_project_config(config_root=config_root)

    return Settings(
        project_root=project_root,
        config_root=config_root,
        logs_enabled=project_config.logs_enabled,
        logs_format=project_config.logs_format,
        logs_max_file_bytes=project_config.logs_max_file_bytes,
        logs_max_files=project_config.logs_max_files,
        logs_redaction=project_config.logs_redaction,
        notices=project_config.notices if notices is None else bool(notices),
        trace_emits=project_config.trace_emits if trace_emits is None else bool(trace_emits),
    )
