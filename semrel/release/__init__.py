"""Release engine.

- branches: expand, classify and resolve the configured branches
- next_version: compute the next semantic version of a branch
- history: last release and release-to-add lookups
- plugins: lifecycle step registry
- pipeline: the release run orchestrator
"""

from __future__ import annotations
