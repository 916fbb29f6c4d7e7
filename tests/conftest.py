from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


@pytest.fixture(scope="session")
def app():
    # main reads settings at import time; provide what the OpenAI adapters need.
    os.environ["OPENAI_API_KEY"] = "sk-test"

    import importlib

    from config.settings import get_settings

    get_settings.cache_clear()
    main = importlib.import_module("main")
    return main.app


@pytest.fixture()
def app_overrides(app):
    yield app.dependency_overrides
    app.dependency_overrides.clear()
