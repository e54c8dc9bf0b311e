import os
import sys

import pytest

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from agency_builder.config import BuilderSettings

ENV_PREFIX = "AGENCY_BUILDER_"


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Every test starts from default settings with templates stored under tmp_path."""
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AGENCY_BUILDER_TEMPLATES_DIR", str(tmp_path / "templates"))


@pytest.fixture
def settings(tmp_path):
    return BuilderSettings(templates_dir=tmp_path / "templates")


@pytest.fixture
def lenient_settings(tmp_path):
    return BuilderSettings(templates_dir=tmp_path / "templates", strict_principals=False)
