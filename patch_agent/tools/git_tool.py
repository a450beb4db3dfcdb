"""Git command gateway.

Every git invocation made by patch-agent goes through ``GitTool``. It runs
``git`` with a fixed working directory (the repository root) through a
``CommandRunner``, so tests can substitute a scripted runner for the real
subprocess-backed one.
"""

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Sequence

from ..errors import VcsError
from ..utils import get_logger


@dataclass(frozen=True)
class CommandResult:
    """Captured output of one finished command."""
    command: tuple
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    """Anything that can run a command in a directory and capture its output."""

    def execute(self, args: Sequence[str], cwd: Path) -> CommandResult:
        ...


class SubprocessRunner:
    """Runs commands as real subprocesses."""

    def __init__(self, executable: str = "git"):
        self.executable = executable

    def execute(self, args: Sequence[str], cwd: Path) -> CommandResult:
        command = (self.executable, *args)
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"

        completed = subprocess.run(
            command,
            cwd=str(cwd),
            env=env,
            text=True,
            capture_output=True,
            check=False,
        )

        return CommandResult(
            command=command,
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )


def find_repo_root(runner: CommandRunner, cwd: Optional[Path] = None) -> Path:
    """
    Resolve the top level of the repository containing ``cwd``.

    Raises:
        VcsError: If ``cwd`` is not inside a git repository
    """
    start = cwd or Path.cwd()
    result = runner.execute(["rev-parse", "--show-toplevel"], start)
    if not result.ok:
        raise VcsError(result.command, result.returncode, result.stdout, result.stderr)
    return Path(result.stdout.strip())


class GitTool:
    """
    Executes git commands against a fixed repository root.

    Handles:
    - Running git with the repository root as working directory
    - Trimming standard output
    - Turning non-zero exit into VcsError
    """

    def __init__(self, root: Path, runner: Optional[CommandRunner] = None):
        """
        Initialize git tool.

        Args:
            root: Repository root (see ``find_repo_root``)
            runner: Command runner (defaults to a subprocess runner)
        """
        self.root = Path(root)
        self.runner = runner or SubprocessRunner()
        self.logger = get_logger(__name__)

    @classmethod
    def discover(
        cls,
        cwd: Optional[Path] = None,
        runner: Optional[CommandRunner] = None
    ) -> "GitTool":
        """Create a GitTool rooted at the repository containing ``cwd``."""
        runner = runner or SubprocessRunner()
        return cls(find_repo_root(runner, cwd), runner)

    def run(self, *args: str) -> CommandResult:
        """Run git and return the raw result, whatever the exit status."""
        result = self.runner.execute(list(args), self.root)
        self.logger.debug(f"git {' '.join(args)} -> {result.returncode}")
        return result

    def execute(self, *args: str) -> str:
        """
        Run git and return its standard output without trailing whitespace.

        Raises:
            VcsError: If git exits non-zero
        """
        result = self.run(*args)
        if not result.ok:
            raise VcsError(
                result.command,
                result.returncode,
                result.stdout,
                result.stderr,
            )
        return result.stdout.rstrip()

    def __call__(self, *args: str) -> str:
        return self.execute(*args)

    def branch_exists(self, name: str) -> bool:
        return self.run("rev-parse", "--verify", "--quiet", f"refs/heads/{name}").ok

    def current_branch(self) -> str:
        return self.execute("rev-parse", "--abbrev-ref", "HEAD")

    def has_staged_changes(self) -> bool:
        """True when the index differs from HEAD."""
        result = self.run("diff", "--cached", "--quiet")
        if result.returncode not in (0, 1):
            raise VcsError(result.command, result.returncode, result.stdout, result.stderr)
        return result.returncode == 1

    def conflicted_files(self):
        output = self.execute("diff", "--name-only", "--diff-filter=U")
        return [line for line in output.splitlines() if line.strip()]

    def last_commit_message(self) -> str:
        return self.execute("log", "-1", "--format=%B")
