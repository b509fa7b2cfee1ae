from __future__ import annotations

import pytest

from xtask.config import (
    DEFAULT_LOGS_ENABLED,
    DEFAULT_LOGS_FORMAT,
    DEFAULT_LOGS_MAX_FILE_BYTES,
    DEFAULT_LOGS_MAX_FILES,
    DEFAULT_LOGS_REDACTION,
    DEFAULT_NOTICES,
    DEFAULT_TRACE_EMITS,
    ProjectConfigError,
    Settings,
    initialize_project_config,
    load_project_config,
    load_settings,
    project_config_exists,
    save_project_config,
)


def test_init_config_contains_defaults(tmp_path):
    config_root = initialize_project_config(workspace_dir=tmp_path)
    config = load_project_config(workspace_dir=tmp_path)
    config_text = (config_root / "config.toml").read_text(encoding="utf-8")

    assert project_config_exists(tmp_path)
    assert (config_root / "logs").is_dir()
    assert "[logs]" in config_text
    assert "[diagnostics]" in config_text
    assert "max_file_bytes = 10485760" in config_text
    assert 'redaction = "default"' in config_text
    assert "notices = true" in config_text
    assert "trace_emits = false" in config_text

    assert config.logs_enabled is DEFAULT_LOGS_ENABLED
    assert config.logs_format == DEFAULT_LOGS_FORMAT
    assert config.logs_max_file_bytes == DEFAULT_LOGS_MAX_FILE_BYTES
    assert config.logs_max_files == DEFAULT_LOGS_MAX_FILES
    assert config.logs_redaction == DEFAULT_LOGS_REDACTION
    assert config.notices is DEFAULT_NOTICES
    assert config.trace_emits is DEFAULT_TRACE_EMITS


def test_init_refuses_existing_directory_without_force(tmp_path):
    initialize_project_config(workspace_dir=tmp_path)

    with pytest.raises(ProjectConfigError):
        initialize_project_config(workspace_dir=tmp_path)

    config_root = initialize_project_config(workspace_dir=tmp_path, force=True)
    assert (config_root / "config.toml").is_file()


def test_invalid_values_fallback_to_defaults(tmp_path):
    config_root = initialize_project_config(workspace_dir=tmp_path)
    (config_root / "config.toml").write_text(
        "\n".join(
            [
                "[logs]",
                'enabled = "maybe"',
                'format = "xml"',
                "max_file_bytes = -1",
                "max_files = 0",
                'redaction = "unknown"',
                "",
                "[diagnostics]",
                'notices = "loud"',
                "trace_emits = 1",
                "",
            ]
        ),
        encoding="utf-8",
    )

    settings = load_settings(workspace_dir=tmp_path)
    assert settings.logs_enabled is DEFAULT_LOGS_ENABLED
    assert settings.logs_format == DEFAULT_LOGS_FORMAT
    assert settings.logs_max_file_bytes == DEFAULT_LOGS_MAX_FILE_BYTES
    assert settings.logs_max_files == DEFAULT_LOGS_MAX_FILES
    assert settings.logs_redaction == DEFAULT_LOGS_REDACTION
    assert settings.notices is DEFAULT_NOTICES
    assert settings.trace_emits is True


def test_missing_sections_use_defaults(tmp_path):
    config_root = initialize_project_config(workspace_dir=tmp_path)
    (config_root / "config.toml").write_text("", encoding="utf-8")

    config = load_project_config(workspace_dir=tmp_path)
    assert config.logs_max_files == DEFAULT_LOGS_MAX_FILES
    assert config.notices is DEFAULT_NOTICES


def test_missing_config_raises(tmp_path):
    assert not project_config_exists(tmp_path)
    with pytest.raises(ProjectConfigError):
        load_settings(workspace_dir=tmp_path)


def test_unparsable_config_raises(tmp_path):
    config_root = initialize_project_config(workspace_dir=tmp_path)
    (config_root / "config.toml").write_text("[logs\nenabled = ", encoding="utf-8")

    with pytest.raises(ProjectConfigError):
        load_project_config(workspace_dir=tmp_path)


def test_save_and_explicit_overrides(isolated_env):
    workspace = isolated_env["workspace"]
    config = load_project_config(workspace_dir=workspace)
    config.trace_emits = True
    config.logs_redaction = "strict"
    save_project_config(config, workspace_dir=workspace)

    settings = load_settings(workspace_dir=workspace)
    assert settings.trace_emits is True
    assert settings.logs_redaction == "strict"
    assert settings.logs_dir == isolated_env["config_root"] / "logs"

    overridden = load_settings(workspace_dir=workspace, notices=False, trace_emits=False)
    assert overridden.notices is False
    assert overridden.trace_emits is False


def test_bare_settings_have_no_log_directory():
    assert Settings().logs_dir is None
