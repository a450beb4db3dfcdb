"""Shared fixtures for patch-agent tests."""

from pathlib import Path
from typing import List, Sequence, Tuple

import pytest

from patch_agent.tools import CommandResult, GitTool


class ScriptedRunner:
    """
    Fake CommandRunner for GitTool.

    Replies are chosen by matching the start of the git arguments. Rules
    added later take precedence; unmatched commands succeed with no output.
    """

    def __init__(self):
        self.calls: List[Tuple[str, ...]] = []
        self.rules = []

    def on(self, *prefix: str, returncode: int = 0, stdout: str = "", stderr: str = ""):
        self.rules.append((tuple(prefix), returncode, stdout, stderr))
        return self

    def fail(self, *prefix: str, stderr: str = "fatal: scripted failure"):
        return self.on(*prefix, returncode=128, stderr=stderr)

    def execute(self, args: Sequence[str], cwd: Path) -> CommandResult:
        args = tuple(args)
        self.calls.append(args)
        for prefix, returncode, stdout, stderr in reversed(self.rules):
            if args[:len(prefix)] == prefix:
                return CommandResult(("git", *args), returncode, stdout, stderr)
        return CommandResult(("git", *args), 0, "", "")

    def calls_to(self, *prefix: str) -> List[Tuple[str, ...]]:
        return [call for call in self.calls if call[:len(prefix)] == prefix]

    def called(self, *prefix: str) -> bool:
        return bool(self.calls_to(*prefix))


@pytest.fixture
def runner():
    return ScriptedRunner()


@pytest.fixture
def git(tmp_path, runner):
    return GitTool(tmp_path, runner)
