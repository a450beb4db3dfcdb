"""Interactive yes/no confirmation."""

from typing import Callable, Optional

YES_ANSWERS = ("y", "yes")
NO_ANSWERS = ("n", "no", "")


def confirm(message: str, input_func: Optional[Callable[[str], str]] = None) -> bool:
    """
    Ask the user a yes/no question on the terminal.

    An empty answer or end of input counts as "no". Anything else
    unrecognised asks again.
    """
    ask = input_func or input
    while True:
        try:
            answer = ask(f"\n  » {message} [y/N] ").strip().lower()
        except EOFError:
            return False
        if answer in YES_ANSWERS:
            return True
        if answer in NO_ANSWERS:
            return False
