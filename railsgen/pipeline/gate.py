"""Operator prompts that collapse free-form input into fixed outcomes.

All operator input goes through ``DecisionGate`` so tests can feed answers
through a plain callable.  Blocking reads run in a daemon thread, keeping
the event loop (and any supervised server's output reader) moving while
the operator thinks.
"""

from __future__ import annotations

import asyncio
import threading
from enum import Enum
from typing import Callable, Mapping, TypeVar

from rich.markup import escape

from railsgen.utils import console

T = TypeVar("T")

InputReader = Callable[[str], str]


class DecisionOutcome(str, Enum):
    """Answer to a yes / no / abort question."""

    CONFIRMED = "confirmed"
    DECLINED = "declined"
    ABORTED = "aborted"


YES_NO_ABORT: dict[str, DecisionOutcome] = {
    "y": DecisionOutcome.CONFIRMED,
    "yes": DecisionOutcome.CONFIRMED,
    "n": DecisionOutcome.DECLINED,
    "no": DecisionOutcome.DECLINED,
    "a": DecisionOutcome.ABORTED,
    "abort": DecisionOutcome.ABORTED,
}


def _console_reader(prompt: str) -> str:
    return console.input(prompt)


def _deliver(
    loop: asyncio.AbstractEventLoop,
    future: asyncio.Future,
    result: str | None = None,
    exc: BaseException | None = None,
) -> None:
    """Hand a reader thread's outcome back to the event loop."""

    def _settle() -> None:
        if future.done():
            # The waiting coroutine was cancelled.
            return
        if exc is not None:
            future.set_exception(exc)
        else:
            future.set_result(result)

    try:
        loop.call_soon_threadsafe(_settle)
    except RuntimeError:
        # Loop already closed; nobody is waiting for the answer.
        pass


class DecisionGate:
    """Asks the operator questions.

    Args:
        reader: Callable that shows a prompt and returns one line of input,
            raising ``EOFError`` when input is exhausted.  Defaults to the
            shared Rich console.
    """

    def __init__(self, reader: InputReader | None = None) -> None:
        self.reader = reader or _console_reader

    async def read_line(self, prompt: str = "> ") -> str | None:
        """Read one line, or ``None`` once input is exhausted.

        The read runs in a daemon thread, so an unanswered prompt never
        holds up interpreter shutdown after Ctrl-C.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[str] = loop.create_future()

        def _read() -> None:
            try:
                line = self.reader(prompt)
            except BaseException as exc:
                _deliver(loop, future, exc=exc)
            else:
                _deliver(loop, future, result=line)

        threading.Thread(target=_read, name="railsgen-input", daemon=True).start()
        try:
            return await future
        except EOFError:
            return None

    async def choose(
        self,
        question: str,
        choices: Mapping[str, T],
        on_eof: T,
        hint: str = "",
    ) -> T:
        """Ask until the answer is one of *choices*' keys.

        Answers are stripped and lowercased before lookup.  Unrecognised
        answers re-prompt; end of input returns *on_eof*.
        """
        console.print(question)
        if hint:
            console.print(hint)
        while True:
            answer = await self.read_line()
            if answer is None:
                return on_eof
            key = answer.strip().lower()
            if key in choices:
                return choices[key]
            console.print(f"[yellow]Invalid answer: {escape(answer.strip())!r}.[/yellow] {hint}".rstrip())

    async def ask(
        self,
        question: str,
        hint: str = "Type Y for yes, N for no, A for abort",
    ) -> DecisionOutcome:
        """Ask a yes / no / abort question."""
        return await self.choose(question, YES_NO_ABORT, on_eof=DecisionOutcome.ABORTED, hint=hint)
