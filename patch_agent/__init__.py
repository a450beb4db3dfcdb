"""
patch-agent: build a local branch from an upstream branch, pull requests and patches.

Usage:
    patch-agent init
    patch-agent run
    patch-agent pr-fetch 11745 10000 --branch-name=some-branch
    patch-agent gen-patch 133cbaae83f710b793c98018cea697a04479bbe4
"""

__version__ = "0.1.0"
