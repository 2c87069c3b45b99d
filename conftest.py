"""Root conftest.py for the paneltest monorepo.

Puts every package's src directory on the import path, registers the
markers used across packages and tags tests that replace hardware with
fakes, so a run on the bench can select ``-m "not uses_fake"``.
"""

from __future__ import annotations

import ast
import inspect
import sys
import textwrap
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.nodes import Item


# Add all package src directories to path for imports
PROJECT_ROOT = Path(__file__).parent
for pkg_dir in sorted(PROJECT_ROOT.glob("paneltest-*/src")):
    if str(pkg_dir) not in sys.path:
        sys.path.insert(0, str(pkg_dir))


def pytest_configure(config: Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "uses_fake: Test replaces hardware or tools with mocks or fakes (auto-detected)",
    )
    config.addinivalue_line(
        "markers",
        "hardware: Test needs the real bench (ADC, GPIO, serial board)",
    )
    config.addinivalue_line(
        "markers",
        "slow: Slow-running test",
    )


class FakeDetector(ast.NodeVisitor):
    """AST visitor that spots fakes in a test function."""

    FAKE_CALLS = frozenset({"MagicMock", "Mock", "patch", "create_autospec", "MockTransport"})
    FAKE_FIXTURES = frozenset({"monkeypatch", "mocker"})
    FAKE_PREFIXES = ("Fake", "_create_mock", "Memory", "Chunk")

    def __init__(self) -> None:
        self.uses_fake = False

    def visit_Call(self, node: ast.Call) -> None:
        if isinstance(node.func, ast.Name):
            name = node.func.id
        elif isinstance(node.func, ast.Attribute):
            name = node.func.attr
        else:
            name = ""
        if name in self.FAKE_CALLS or name.startswith(self.FAKE_PREFIXES):
            self.uses_fake = True
        self.generic_visit(node)

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        if any(arg.arg in self.FAKE_FIXTURES for arg in node.args.args):
            self.uses_fake = True
        self.generic_visit(node)


def _uses_fake(item: Item) -> bool:
    obj = getattr(item, "obj", None)
    if obj is None:
        return False
    try:
        source = inspect.getsource(obj)
        tree = ast.parse(textwrap.dedent(source))
    except (OSError, TypeError, SyntaxError):
        return False
    detector = FakeDetector()
    detector.visit(tree)
    return detector.uses_fake


def pytest_collection_modifyitems(config: Config, items: list[Item]) -> None:
    """Mark tests that use fakes."""
    marker = pytest.mark.uses_fake
    for item in items:
        if not item.get_closest_marker("uses_fake") and _uses_fake(item):
            item.add_marker(marker)


def pytest_report_header(config: Config) -> list[str]:
    """Add the suite name to the pytest header."""
    return ["paneltest monorepo test suite"]
