"""
Pytest configuration and shared fixtures for screen-flow tests.
"""

from typing import Dict, Optional

import pytest

from fakes import BASE_URL, FakePage, FakeScreen
from screen_flow.config import ExplorerConfig
from screen_flow.driver import PageDriver


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("SCREEN_FLOW_BASE_URL", "SCREEN_FLOW_OUTPUT_DIR", "SCREEN_FLOW_HEADLESS"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config(tmp_path):
    return ExplorerConfig(base_url=BASE_URL, output_dir=str(tmp_path / "out"), settle_ms=0)


@pytest.fixture
def make_driver(config):
    """Build a ``(page, driver)`` pair for a scripted site."""

    def _make(site: Dict[str, FakeScreen], cfg: Optional[ExplorerConfig] = None):
        page = FakePage(site)
        return page, PageDriver(page, cfg or config)

    return _make
