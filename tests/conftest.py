"""
Pytest configuration for the HaptiCode test suite.

Configures:
- pytest-asyncio runs in auto mode (see pyproject.toml)
- HAPTICODE_CONFIG pointing at the repo's config.yaml
- settings fixtures that run user code with the current interpreter
"""
import os
import sys
from pathlib import Path

import pytest

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

os.environ.setdefault("HAPTICODE_CONFIG", str(_project_root / "config.yaml"))


from hapticode import config as config_module  # noqa: E402
from hapticode.config import (  # noqa: E402
    AssistantConfig,
    CompletionSettings,
    ExecutionSettings,
)


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch):
    """Restore the module-level config cache and env after every test."""
    monkeypatch.setattr(config_module, "_config", config_module._config)
    monkeypatch.setattr(config_module, "_config_path", config_module._config_path)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_MODEL", raising=False)


@pytest.fixture
def workdir(tmp_path):
    """Private temp dir for interpreter temp files, so leftovers are visible."""
    d = tmp_path / "exec"
    d.mkdir()
    return d


@pytest.fixture
def execution_settings(workdir):
    return ExecutionSettings(
        python_command=sys.executable,
        timeout_seconds=10,
        temp_dir=str(workdir),
    )


@pytest.fixture
def completion_settings():
    return CompletionSettings(base_url="https://gemini.test", model="gemini-2.0-flash")


@pytest.fixture
def assistant_config(execution_settings, completion_settings):
    return AssistantConfig(
        allowed_origins=["*"],
        completion=completion_settings,
        execution=execution_settings,
    )
