"""Utility functions for UX."""
import contextlib
import sys
import typing
from typing import Optional, TextIO

import colorama

from skybake.utils import env_options


@contextlib.contextmanager
def print_exception_no_traceback():
    """A context manager that prints out an exception without traceback.

    Mainly for UX: user-facing errors, e.g., ValueError, should suppress long
    tracebacks. The previous `sys.tracebacklimit` is restored on exit, also
    when the block raises.

    Example usage:

        with print_exception_no_traceback():
            if error():
                raise ValueError('...')
    """
    had_tracelimit = hasattr(sys, 'tracebacklimit')
    original_tracelimit = getattr(sys, 'tracebacklimit', None)
    sys.tracebacklimit = 0
    try:
        yield
    finally:
        if had_tracelimit:
            sys.tracebacklimit = original_tracelimit
        else:
            del sys.tracebacklimit


def finishing_message(message: str,
                      follow_up_message: Optional[str] = None) -> str:
    """Gets the finishing message for the given message.

    Args:
        message: The main message to be displayed.
        follow_up_message: A message to be displayed after the main message.
          The follow up message is not colored.
    """
    # We have to reset the color before the message, because a previous
    # message with dimmed color might leave the terminal in that state.
    follow_up_message = follow_up_message if (follow_up_message
                                              is not None) else ''
    return (f'{colorama.Style.RESET_ALL}{colorama.Fore.GREEN}✓ '
            f'{message}{colorama.Style.RESET_ALL}{follow_up_message}')


def error_message(message: str) -> str:
    """Gets the error message for the given message."""
    return (f'{colorama.Style.RESET_ALL}{colorama.Fore.RED}⨯'
            f'{colorama.Style.RESET_ALL} {message}')


def retry_message(message: str) -> str:
    """Gets the retry message for the given message."""
    return (f'{colorama.Style.RESET_ALL}{colorama.Fore.YELLOW}↺'
            f'{colorama.Style.RESET_ALL} {message}')


@typing.runtime_checkable
class MessageSink(typing.Protocol):
    """User-facing messaging sink of a pipeline run."""

    def say(self, message: str) -> None:
        """Announces a new phase of work."""
        ...

    def message(self, message: str) -> None:
        """Reports a detail of the current phase."""
        ...

    def error(self, message: str) -> None:
        """Reports a failure."""
        ...


class ConsoleUi:
    """A MessageSink writing colored lines to a terminal.

    Color is dropped when SKYBAKE_NO_COLOR is set.
    """

    def __init__(self,
                 stream: Optional[TextIO] = None,
                 prefix: str = '') -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._prefix = f'{prefix}: ' if prefix else ''

    def _write(self, text: str, style: str = '') -> None:
        if style and not env_options.Options.DISABLE_COLOR.get():
            text = f'{style}{text}{colorama.Style.RESET_ALL}'
        print(text, file=self._stream, flush=True)

    def say(self, message: str) -> None:
        self._write(f'==> {self._prefix}{message}', colorama.Style.BRIGHT)

    def message(self, message: str) -> None:
        self._write(f'    {self._prefix}{message}')

    def error(self, message: str) -> None:
        self._write(f'==> {self._prefix}{message}', colorama.Fore.RED)
