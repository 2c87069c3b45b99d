"""Per-board execution context."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from paneltest_core.types.board import Board
from paneltest_logbus.bus import Reporter

logger = logging.getLogger(__name__)


@dataclass
class BoardContext:
    """State owned by one pipeline run.

    A fresh context is created for every board. It holds the board being
    tested, the reporter used for operator feedback, and resources opened
    during the run (such as the serial channel) that later steps reuse.

    Example:
        context = BoardContext(board=Board(), reporter=bus.reporter())
        context.set_resource("serial", channel)
    """

    board: Board
    reporter: Reporter
    _resources: dict[str, Any] = field(default_factory=dict, repr=False)

    def set_resource(self, name: str, resource: Any) -> None:
        """Store a resource for later steps.

        Args:
            name: Resource name.
            resource: The resource object.
        """
        self._resources[name] = resource

    def get_resource(self, name: str) -> Any:
        """Get a resource by name.

        Raises:
            KeyError: If resource not found.
        """
        return self._resources[name]

    def has_resource(self, name: str) -> bool:
        """Check if a resource exists."""
        return name in self._resources

    def close_resources(self) -> None:
        """Close every resource that has a ``close()`` method, newest first."""
        for name, resource in reversed(list(self._resources.items())):
            close = getattr(resource, "close", None)
            if close is None:
                continue
            try:
                close()
            except Exception as e:  # pylint: disable=broad-except
                logger.warning("Failed to close resource %s: %s", name, e)
        self._resources.clear()
