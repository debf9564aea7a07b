"""Foreign-key dependency ordering for table creation and teardown.

Builds a directed graph ``table -> referenced table`` over the tables being
dumped and orders it with Kahn's algorithm. Ties are broken by the order the
tables were given in, so the result is a pure function of the table set and
its foreign keys.

Usage:
    from sqlport.schema.dependencies import resolve_order

    order = resolve_order(snapshot.tables)
    order.create_order   # parents first
    order.drop_order     # children first
"""

import heapq
import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlport.errors import CyclicDependencyError
from sqlport.schema.models import TableDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DependencyOrder:
    """Result of dependency resolution.

    ``deferred_edges`` holds ``(table, referenced_table)`` pairs whose
    foreign key points at a table created later. It is only non-empty when
    cycles were allowed.

    Example:
        order = DependencyOrder(create_order=["projects", "tasks"])
        order.drop_order
        # ['tasks', 'projects']
    """

    create_order: list[str] = field(default_factory=list)
    deferred_edges: frozenset[tuple[str, str]] = frozenset()

    @property
    def drop_order(self) -> list[str]:
        return list(reversed(self.create_order))

    def is_deferred(self, table: str, referenced_table: str) -> bool:
        return (table, referenced_table) in self.deferred_edges


def build_dependency_graph(tables: Sequence[TableDescriptor]) -> dict[str, set[str]]:
    """Build the FK graph restricted to the given tables.

    Edges to tables outside the set are dropped rather than followed, and
    self-references are ignored since a table can always reference itself
    at creation time.

    Args:
        tables: Tables being dumped.

    Returns:
        Dict mapping each table name to the set of tables it references.
    """
    names = {t.name for t in tables}
    graph: dict[str, set[str]] = {}
    for table in tables:
        refs: set[str] = set()
        for fk in table.foreign_keys:
            if fk.referenced_table == table.name:
                continue
            if fk.referenced_table not in names:
                logger.debug(
                    f"Ignoring FK {table.name} -> {fk.referenced_table}: "
                    f"referenced table not in dump set"
                )
                continue
            refs.add(fk.referenced_table)
        graph[table.name] = refs
    return graph


def topological_order(
    names: Sequence[str],
    dependencies: dict[str, set[str]],
    allow_cycles: bool = False,
) -> DependencyOrder:
    """Order names so every dependency precedes its dependents.

    Args:
        names: Node names in tie-break order.
        dependencies: Mapping of node to the nodes it must follow. Entries
            outside ``names`` are ignored.
        allow_cycles: When False a cycle raises ``CyclicDependencyError``.
            When True the lowest-ranked cycle member is placed early and its
            unresolved edges are reported as deferred.

    Returns:
        DependencyOrder with the create order and any deferred edges.

    Raises:
        CyclicDependencyError: If a cycle exists and ``allow_cycles`` is False.
    """
    position = {name: i for i, name in enumerate(names)}
    remaining: dict[str, set[str]] = {
        name: {d for d in dependencies.get(name, set()) if d in position and d != name}
        for name in names
    }
    dependents: dict[str, set[str]] = defaultdict(set)
    for name, deps in remaining.items():
        for dep in deps:
            dependents[dep].add(name)

    ready = [position[name] for name in names if not remaining[name]]
    heapq.heapify(ready)

    order: list[str] = []
    placed: set[str] = set()
    deferred: set[tuple[str, str]] = set()

    while len(order) < len(names):
        if not ready:
            stuck = [name for name in names if name not in placed]
            members = _cycle_members(stuck, remaining, position)
            if not allow_cycles:
                raise CyclicDependencyError(members)
            forced = members[0]
            logger.warning(
                f"Breaking FK cycle ({', '.join(members)}) at '{forced}'; "
                f"deferring its references to {', '.join(sorted(remaining[forced]))}"
            )
            deferred.update((forced, dep) for dep in remaining[forced])
            remaining[forced].clear()
            heapq.heappush(ready, position[forced])

        name = names[heapq.heappop(ready)]
        order.append(name)
        placed.add(name)
        for child in dependents[name]:
            if child in placed:
                continue
            remaining[child].discard(name)
            if not remaining[child] and position[child] not in ready:
                heapq.heappush(ready, position[child])

    return DependencyOrder(create_order=order, deferred_edges=frozenset(deferred))


def resolve_order(
    tables: Sequence[TableDescriptor],
    allow_cycles: bool = False,
) -> DependencyOrder:
    """Resolve create/drop order for tables from their foreign keys.

    Args:
        tables: Table descriptors in tie-break order.
        allow_cycles: Passed to ``topological_order``.

    Returns:
        DependencyOrder over the table names.

    Example:
        >>> resolve_order([tasks, projects]).create_order
        ['projects', 'tasks']
    """
    graph = build_dependency_graph(tables)
    return topological_order([t.name for t in tables], graph, allow_cycles=allow_cycles)


def _cycle_members(
    stuck: list[str],
    remaining: dict[str, set[str]],
    position: dict[str, int],
) -> list[str]:
    """Narrow the unplaced nodes down to those that sit on a cycle.

    Nodes that merely depend on a cycle are pruned: a node nobody else in
    the set is waiting on cannot be part of a cycle.
    """
    members = set(stuck)
    changed = True
    while changed:
        changed = False
        for name in list(members):
            if not any(name in remaining[other] for other in members if other != name):
                members.discard(name)
                changed = True
    return sorted(members, key=position.__getitem__)
