"""Tests for sensor driver loading."""

from __future__ import annotations

import os.path

import pytest

from paneltest_core.errors import ConfigError
from paneltest_runner.loader import load_driver


class TestLoadDriver:
    """Tests for load_driver."""

    def test_loads_callable(self) -> None:
        assert load_driver("os.path:join") is os.path.join

    @pytest.mark.parametrize("path", ["os.path.join", ":join", "os.path:"])
    def test_invalid_format(self, path: str) -> None:
        with pytest.raises(ConfigError, match="module:function"):
            load_driver(path)

    def test_missing_module(self) -> None:
        with pytest.raises(ConfigError, match="Failed to import module"):
            load_driver("paneltest_no_such_module:create_sensor")

    def test_missing_attribute(self) -> None:
        with pytest.raises(ConfigError, match="has no attribute 'create_sensor'"):
            load_driver("os.path:create_sensor")

    def test_not_callable(self) -> None:
        with pytest.raises(ConfigError, match="not callable"):
            load_driver("os:sep")
