"""Console prompt surface for the reminder scheduler."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from rich.console import Console

logger = logging.getLogger(__name__)


class ConsolePromptSurface:
    """
    Prints the reminder question and remembers its callbacks.

    The CLI input loop answers it by calling ``answer("continue")`` or
    ``answer("stop")``. Only the most recent prompt can be answered.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()
        self._pending: Optional[tuple[Callable[[], None], Callable[[], None]]] = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def show(
        self,
        message: str,
        on_continue: Callable[[], None],
        on_stop: Callable[[], None],
    ) -> None:
        self._pending = (on_continue, on_stop)
        self._console.print(
            f"[bold yellow]{message}[/bold yellow] "
            "Type [green]c[/green] to continue or [red]s[/red] to stop."
        )

    def answer(self, choice: str) -> bool:
        """
        Deliver the user's choice to the latest prompt.

        Returns:
            True if a prompt was waiting and the choice was understood.
        """
        if self._pending is None:
            return False
        choice = choice.strip().lower()
        on_continue, on_stop = self._pending
        if choice in ("c", "continue"):
            self._pending = None
            on_continue()
            return True
        if choice in ("s", "stop"):
            self._pending = None
            on_stop()
            return True
        logger.debug("Unrecognised prompt answer: %r", choice)
        return False
