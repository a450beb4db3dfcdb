"""Pull request integration.

This module provides:
- PatchOrchestrator: Runs the whole upstream + pull requests + patches sequence
- PullRequestResolver: Looks up pull requests and fetches their branches
- EphemeralRemoteManager: Adds, fetches and removes throwaway remotes/branches
- MergeEngine: Squash merges branches with a bounded conflict policy
"""

from .orchestrator import PatchOrchestrator
from .resolver import PullRequestResolver
from .remotes import EphemeralRemoteManager
from .merge import MergeEngine

__all__ = [
    "PatchOrchestrator",
    "PullRequestResolver",
    "EphemeralRemoteManager",
    "MergeEngine",
]
