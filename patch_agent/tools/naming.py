"""Collision-free names for ephemeral remotes and branches."""

import random
import string
from typing import Optional

from ..errors import NameAllocationError
from .git_tool import GitTool

ALIAS_TOKEN_LENGTH = 4
MAX_NAME_ATTEMPTS = 5000


def is_valid_branch_name(name: str) -> bool:
    """True if ``name`` only has alphanumerics and ``. - / _``."""
    return bool(name) and all(ch.isalnum() or ch in ".-/_" for ch in name)


def normalize_commit_msg(message: str) -> str:
    """Lowercase ``message``, turning whitespace into ``_`` and other symbols into ``-``."""
    normalized = []
    for ch in message.strip():
        if ch.isalnum():
            normalized.append(ch.lower())
        elif ch.isspace():
            normalized.append("_")
        else:
            normalized.append("-")
    return "".join(normalized)


class NameAllocator:
    """
    Produces names for remotes and branches that do not clash.

    Random aliases are used for throwaway remotes; human readable branch
    names are kept when free and suffixed with a counter otherwise.
    """

    def __init__(self, git: GitTool, rng: Optional[random.Random] = None, max_attempts: int = MAX_NAME_ATTEMPTS):
        self.git = git
        self.rng = rng or random.Random()
        self.max_attempts = max_attempts

    def unique_alias(self, seed: str) -> str:
        """Return ``"<random-token>-<seed>"``."""
        alphabet = string.ascii_letters + string.digits
        token = "".join(self.rng.choices(alphabet, k=ALIAS_TOKEN_LENGTH))
        return f"{token}-{seed}"

    def first_available_branch_name(self, candidate: str) -> str:
        """
        Return ``candidate`` if no branch has that name, else ``"<n>-<candidate>"``.

        Tries n = 2, 3, 4, ... until a free name is found.

        Raises:
            NameAllocationError: If every name up to the cap is taken
        """
        if not self.git.branch_exists(candidate):
            return candidate

        for n in range(2, self.max_attempts + 2):
            name = f"{n}-{candidate}"
            if not self.git.branch_exists(name):
                return name

        raise NameAllocationError(
            f"Could not find a free branch name for {candidate} "
            f"after {self.max_attempts} attempts"
        )
