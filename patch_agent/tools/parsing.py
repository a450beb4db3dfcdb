"""Parsing of pull request tokens, commit pins and ``--flag=value`` arguments."""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..models import PullRequestRef

PR_PIN_SEPARATOR = "@"
BRANCH_PIN_SEPARATOR = " @ "


@dataclass(frozen=True)
class Flag:
    """A command line flag with a short and a long spelling.

    Flags that carry a value include the ``=`` in both spellings,
    e.g. ``Flag("-b=", "--branch-name=", ...)``.
    """
    short: str
    long: str
    description: str = ""

    def extract_value(self, arg: str) -> Optional[str]:
        """
        Return what follows either prefix of this flag in ``arg``.

        >>> Flag("-r=", "--repo-name=").extract_value("--repo-name=abc")
        'abc'
        >>> Flag("-r=", "--repo-name=").extract_value("-m=abc") is None
        True
        """
        if arg.startswith(self.short):
            return arg[len(self.short):]
        if arg.startswith(self.long):
            return arg[len(self.long):]
        return None

    def matches(self, arg: str) -> bool:
        return arg in (self.short, self.long)


def parse_pin(value: str, separator: str = PR_PIN_SEPARATOR) -> Tuple[str, Optional[str]]:
    """
    Split ``"<name><separator><commit>"`` into ``(name, commit)``.

    Whitespace around both parts is dropped. Without the separator, or
    with nothing after it, the commit is None.
    """
    name, found, commit = value.partition(separator)
    if not found:
        return value.strip(), None
    commit = commit.strip()
    return name.strip(), commit or None


def ignore_octothorpe(value: str) -> str:
    """Allow ``#12345`` as well as ``12345``."""
    return value[1:] if value.startswith("#") else value


def parse_pull_request(token: str, custom_branch_name: Optional[str] = None) -> PullRequestRef:
    """
    Parse ``"[#]<number>[@<commit>]"`` into a PullRequestRef.

    Raises:
        ValueError: If the number part is not numeric
    """
    number, commit_pin = parse_pin(ignore_octothorpe(token.strip()))
    if not (number.isascii() and number.isdigit()):
        raise ValueError(
            f"The following argument couldn't be parsed as a pull request number: {token}\n"
            "  Examples of valid pull request numbers (with custom commit hashes supported): "
            "1154, 500, '1001@0b36296f67a80309243ea5c8892c79798c6dcf93'"
        )
    return PullRequestRef(
        number=number,
        custom_branch_name=custom_branch_name,
        commit_pin=commit_pin,
    )
