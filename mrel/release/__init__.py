"""Release bounded context.

- severity, semver, resolver: pure value types and functions
- unit, graph, workspace, manifest: the loaded workspace model
- synchronizer, propagation: cross-unit coordination
- history, commits, plugins, notes: collaborators
- driver, runner: per-unit pipeline and run orchestration
"""

from __future__ import annotations
