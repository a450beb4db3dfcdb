"""Configuration for patch-agent."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set
import os
import tomllib

from .errors import ConfigError
from .models import ConflictPolicy


APP_NAME = "patch-agent"
CONFIG_ROOT = ".patch-agent"
CONFIG_FILE = "config.toml"

EXAMPLE_CONFIG = '''# Repository whose branch and pull requests are merged together
repo = "helix-editor/helix"

# Branch of `repo` that the pull requests are merged into.
# Append " @ <commit>" to pin it to an exact commit, e.g. "master @ a1b2c3d"
remote-branch = "master"

# Local branch that will hold the result. WARNING: it is overwritten on every run
local-branch = "patchy"

# Pull requests to merge, in order. Append "@<commit>" to pin one to a commit
pull-requests = [
    "6797",  # syntax highlighting for nginx files
    "#2507@0b36296f67a80309243ea5c8892c79798c6dcf93",
]

# Patch files in .patch-agent/ to apply after merging, without the .patch extension
patches = []
'''


@dataclass
class AgentConfig:
    """Contents of ``.patch-agent/config.toml``."""

    repo: str
    remote_branch: str
    local_branch: str
    pull_requests: List[str] = field(default_factory=list)
    patches: Optional[Set[str]] = None

    @property
    def upstream_url(self) -> str:
        """Clone URL of the configured repository."""
        return f"https://github.com/{self.repo}.git"

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "AgentConfig":
        """Build config from parsed TOML, accepting kebab or snake case keys."""
        data = {key.replace("-", "_"): value for key, value in raw.items()}

        repo = str(data.get("repo", "")).strip()
        if not repo:
            raise ConfigError(
                "You haven't specified a `repo` in your config, which can be for example:\n"
                '  - "helix-editor/helix"\n'
                '  - "microsoft/vscode"'
            )

        for key in ("remote_branch", "local_branch"):
            if not str(data.get(key, "")).strip():
                raise ConfigError(f"Missing `{key.replace('_', '-')}` in your config")

        pull_requests = data.get("pull_requests", [])
        if not isinstance(pull_requests, list):
            raise ConfigError("`pull-requests` must be a list of pull request numbers")

        patches = data.get("patches")
        if patches is not None and not isinstance(patches, list):
            raise ConfigError("`patches` must be a list of patch names")

        return cls(
            repo=repo,
            remote_branch=str(data["remote_branch"]).strip(),
            local_branch=str(data["local_branch"]).strip(),
            pull_requests=[str(pr) for pr in pull_requests],
            patches=set(str(p) for p in patches) if patches is not None else None,
        )


def load_config(config_dir: Path) -> AgentConfig:
    """
    Load the configuration file from the configuration directory.

    Args:
        config_dir: Path of ``.patch-agent`` inside the repository

    Returns:
        Parsed AgentConfig

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    config_file = config_dir / CONFIG_FILE

    try:
        raw = config_file.read_text()
    except OSError as e:
        raise ConfigError(
            f"Could not find `{CONFIG_ROOT}/{CONFIG_FILE}` configuration file: {e}"
        ) from e

    try:
        parsed = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(
            f"Could not parse `{CONFIG_ROOT}/{CONFIG_FILE}` configuration file: {e}"
        ) from e

    return AgentConfig.from_dict(parsed)


@dataclass
class RunOptions:
    """Run-time switches for the orchestrator."""

    yes: bool = False                       # Skip the final confirmation
    github_token: Optional[str] = None
    conflict_policy: ConflictPolicy = ConflictPolicy.MANUAL
    max_parallel_lookups: int = 5           # Concurrent GitHub metadata requests

    @classmethod
    def from_env(cls) -> "RunOptions":
        """Create options from environment variables."""
        return cls(
            yes=os.environ.get("PATCH_AGENT_YES", "false").lower() == "true",
            github_token=os.environ.get("GITHUB_TOKEN"),
            conflict_policy=ConflictPolicy(
                os.environ.get("PATCH_AGENT_CONFLICT_POLICY", ConflictPolicy.MANUAL.value)
            ),
            max_parallel_lookups=int(os.environ.get("PATCH_AGENT_MAX_PARALLEL", "5")),
        )
