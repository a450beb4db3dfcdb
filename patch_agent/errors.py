"""Exception types raised by patch-agent."""

from typing import List, Optional, Sequence


class PatchAgentError(RuntimeError):
    """Base error for all patch-agent failures."""


class VcsError(PatchAgentError):
    """Raised when a git command exits non-zero."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stdout: str,
        stderr: str,
    ):
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            "Git command failed.\n"
            f"Command: {' '.join(self.command)}\n"
            f"Stdout: {stdout}\n"
            f"Stderr: {stderr}"
        )


class ConfigError(PatchAgentError):
    """Raised when the configuration file is missing or invalid."""


class NameAllocationError(PatchAgentError):
    """Raised when no free branch name could be found."""


class ResolveError(PatchAgentError):
    """Raised when a pull request cannot be turned into a local branch."""

    def __init__(self, pr_number: str, message: str, info=None):
        self.pr_number = pr_number
        self.info = info  # BranchAndRemote left behind, if any
        super().__init__(message)


class FetchError(ResolveError):
    """Raised when the pull request metadata lookup fails."""

    def __init__(self, pr_number: str, url: str, body: str, status: Optional[int] = None):
        self.url = url
        self.body = body
        self.status = status
        status_line = f"Request failed with status: {status}\n" if status is not None else ""
        super().__init__(
            pr_number,
            f"Could not fetch pull request #{pr_number}\n"
            f"{status_line}"
            f"Requested URL: {url}\n"
            f"Response: {body}",
        )


class MergeError(PatchAgentError):
    """Raised when a branch could not be merged into the current branch."""


class MergeConflictError(MergeError):
    """Raised when a merge stopped on conflicts and the working tree was reset."""

    def __init__(self, branch: str, files: Optional[List[str]] = None):
        self.branch = branch
        self.files = list(files or [])
        detail = f": {', '.join(self.files)}" if self.files else ""
        super().__init__(f"Unresolved conflict while merging {branch}{detail}")


class BackupError(PatchAgentError):
    """Raised when configuration files cannot be backed up or restored."""


class FatalAbort(PatchAgentError):
    """Raised after rolling back a run that cannot proceed."""


class RemoteFetchError(PatchAgentError):
    """Raised when a remote could not be added, fetched or pinned."""


class CleanupError(PatchAgentError):
    """Raised when removing an ephemeral branch or remote failed."""

    def __init__(self, errors: List[VcsError]):
        self.errors = errors
        super().__init__("\n".join(str(e) for e in errors))
