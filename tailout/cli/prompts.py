"""Interactive prompt helpers."""

from __future__ import annotations

import logging
import signal
import threading
from contextlib import contextmanager
from typing import Iterator, Sequence

from rich.console import Console
from rich.prompt import Confirm, IntPrompt
from rich.table import Table

from tailout.core.signals import CancellationToken
from tailout.exceptions import OperationCancelledError

logger = logging.getLogger(__name__)


class Prompter:
    """Terminal prompts used by the create and connect commands.

    Every prompt raises OperationCancelledError when the operator presses
    Ctrl+C, closes stdin or the token is cancelled while it waits. Ctrl+C
    interrupts the read immediately, whatever SIGINT handler the command
    installed.

    Parameters
    ----------
    console : Console | None
        Console to render on, a stderr console when None so stdout stays
        free for command output
    token : CancellationToken | None
        Cancellation token of the current invocation, checked before and
        after each prompt
    """

    def __init__(
        self, console: Console | None = None, token: CancellationToken | None = None
    ) -> None:
        self.console = console or Console(stderr=True)
        self.token = token

    @contextmanager
    def _interruptible(self) -> Iterator[None]:
        """Restore the default SIGINT handler while waiting for input."""
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        previous = signal.signal(signal.SIGINT, signal.default_int_handler)
        try:
            yield
        finally:
            if previous is not None:
                signal.signal(signal.SIGINT, previous)

    def _check_token(self) -> None:
        if self.token is not None:
            self.token.raise_if_cancelled("prompt")

    def confirm(self, question: str) -> bool:
        """Ask a yes/no question, defaulting to no."""
        self._check_token()
        try:
            with self._interruptible():
                answer = bool(Confirm.ask(question, default=False, console=self.console))
        except (KeyboardInterrupt, EOFError) as e:
            raise OperationCancelledError("prompt cancelled") from e

        self._check_token()
        return answer

    def select_one(self, title: str, options: Sequence[str]) -> int:
        """Show a numbered list and return the zero-based index picked.

        Parameters
        ----------
        title : str
            Heading shown above the options
        options : Sequence[str]
            Labels to choose from, must not be empty

        Returns
        -------
        int
            Index into ``options``
        """
        if not options:
            raise ValueError("select_one() requires at least one option")

        table = Table(title=title, show_header=False, box=None)
        table.add_column(justify="right", style="cyan")
        table.add_column()
        for number, label in enumerate(options, start=1):
            table.add_row(str(number), label)
        self.console.print(table)

        choices = [str(number) for number in range(1, len(options) + 1)]
        self._check_token()
        try:
            with self._interruptible():
                picked = IntPrompt.ask(
                    "Enter a number",
                    choices=choices,
                    show_choices=False,
                    default=1,
                    console=self.console,
                )
        except (KeyboardInterrupt, EOFError) as e:
            raise OperationCancelledError("selection cancelled") from e

        self._check_token()
        return picked - 1

    def select_region(self, regions: Sequence[str]) -> str:
        """Ask for one of ``regions`` and return its name."""
        return regions[self.select_one("Select a region", regions)]
