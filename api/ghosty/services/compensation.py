import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class CompensationLog:
    """Ordered record of completed write steps and how to undo them.

    ``rollback`` runs the undo actions newest first. A failing undo is
    logged and the remaining undos still run.
    """

    def __init__(self, name: str):
        self.name = name
        self._steps: list[tuple[str, Callable[[], Any]]] = []

    def record(self, step: str, undo: Callable[[], Any]) -> None:
        self._steps.append((step, undo))

    def rollback(self) -> list[str]:
        failed: list[str] = []
        while self._steps:
            step, undo = self._steps.pop()
            try:
                undo()
                logger.warning(f"[{self.name}] compensated step={step}")
            except Exception:
                logger.exception(f"[{self.name}] compensation failed step={step}")
                failed.append(step)
        return failed
