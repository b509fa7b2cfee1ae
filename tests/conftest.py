from __future__ import annotations

from io import StringIO
from pathlib import Path

import pytest

from xtask.config import initialize_project_config, resolve_project_config_root
from xtask.kernel.registry import CoreRegistry


@pytest.fixture
def notices() -> StringIO:
    return StringIO()


@pytest.fixture
def registry(notices: StringIO) -> CoreRegistry:
    return CoreRegistry(notice_stream=notices)


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    workspace = tmp_path / "workspace"
    workspace.mkdir(parents=True, exist_ok=True)

    monkeypatch.chdir(workspace)
    initialize_project_config(workspace_dir=workspace)

    return {
        "workspace": workspace,
        "config_root": resolve_project_config_root(workspace),
    }
