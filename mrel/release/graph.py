"""Dependency graph of the units in one run.

Edges point from a dependent to the workspace units it declares in any
dependency scope. Names that do not resolve to a unit of this run are
external packages and are ignored. The graph must be acyclic: severity
propagation converges in at most depth + 1 rounds only on a DAG.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

import networkx as nx

from mrel.core.config import Config
from mrel.core.result import Err, Ok, Result
from mrel.release.errors import ReleaseError
from mrel.release.manifest import Manifest
from mrel.release.unit import Unit


class DependencyGraph:
    """All units of a run, in enumeration order, with resolved edges."""

    def __init__(self, units: Sequence[Unit]) -> None:
        self.units: list[Unit] = list(units)
        self._by_name = {u.name: u for u in self.units}
        self._digraph: nx.DiGraph = nx.DiGraph()
        self._digraph.add_nodes_from(self._by_name)
        for unit in self.units:
            self._digraph.add_edges_from((unit.name, dep.name) for dep in unit.depends_on)

    def __iter__(self) -> Iterator[Unit]:
        return iter(self.units)

    def __len__(self) -> int:
        return len(self.units)

    @property
    def depth(self) -> int:
        """Number of edges on the longest dependency chain."""
        if not self.units:
            return 0
        return int(nx.dag_longest_path_length(self._digraph))

    def find_cycle(self) -> list[str] | None:
        try:
            edges = nx.find_cycle(self._digraph)
        except nx.NetworkXNoCycle:
            return None
        return [src for src, _ in edges] + [edges[0][0]]

    def topological(self) -> list[Unit]:
        """Dependencies before dependents, ties in enumeration order."""
        index = {u.name: i for i, u in enumerate(self.units)}
        order = nx.lexicographical_topological_sort(self._digraph.reverse(copy=True), key=index.__getitem__)
        return [self._by_name[name] for name in order]


def resolve_edges(units: Sequence[Unit]) -> None:
    """Fill ``depends_on`` from declared dependency names; duplicates collapse."""
    by_name = {u.name: u for u in units}
    for unit in units:
        unit.depends_on = [
            by_name[name]
            for name in unit.manifest.dependency_names
            if name in by_name and name != unit.name
        ]


def build_graph(manifests: Sequence[Manifest], config: Config) -> Result[DependencyGraph, ReleaseError]:
    """Create units for ``manifests`` and validate the graph they form."""
    selected = [
        m for m in manifests if not (config.release.ignore_private_packages and m.private)
    ]
    if not selected:
        return Err(
            ReleaseError(
                kind="no_units",
                message="no releasable workspace packages",
                hint="all packages are private and ignore_private_packages is set",
            )
        )

    units = [Unit(manifest=m, policy=config.policy_for(m.name)) for m in selected]
    resolve_edges(units)
    graph = DependencyGraph(units)

    cycle = graph.find_cycle()
    if cycle is not None:
        return Err(
            ReleaseError(
                kind="cyclic_dependency",
                message=f"cyclic workspace dependency: {' -> '.join(cycle)}",
                hint="break the cycle or ignore one of the packages",
            )
        )
    return Ok(graph)
