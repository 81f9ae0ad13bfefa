"""Orchestration layer — Dependency & ordering resolver.

Builds a NetworkX DiGraph over the ready actions of a batch.  An edge runs
from an action that creates (or renames something to) an entity name to
every action in the batch that references that name, so creators are
always dispatched first.  Among unrelated actions the original batch order
is kept.

Name-based inference is authoritative.  ``dependsOn`` only adds an edge
when it names an in-batch creation that does not contradict the inferred
graph; anything else is logged and ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import networkx as nx

from sheetpilot.document.base import DocumentCapabilitySnapshot
from sheetpilot.logging import get_logger
from sheetpilot.protocol.models import ErrorKind, ValidatedAction
from sheetpilot.protocol.schema import EntityKind, EntityRef

log = get_logger(__name__)

NameKey = tuple[EntityKind, str]


@dataclass
class ResolvedBatch:
    """Dispatch order plus everything the resolver refused."""

    ordered: list[ValidatedAction] = field(default_factory=list)
    rejected: list[ValidatedAction] = field(default_factory=list)
    # action index -> indices of the in-batch actions it waits for
    prerequisites: dict[int, set[int]] = field(default_factory=dict)


class DependencyResolver:
    """Orders the ready subset of a batch.

    Usage::

        resolved = DependencyResolver().resolve(ready_actions, snapshot)
        for action in resolved.ordered:
            ...
    """

    def resolve(
        self, actions: list[ValidatedAction], snapshot: DocumentCapabilitySnapshot
    ) -> ResolvedBatch:
        by_index = {action.index: action for action in actions}
        creators = self._creators(actions, snapshot)

        graph: nx.DiGraph = nx.DiGraph()
        graph.add_nodes_from(by_index)
        reasons: dict[int, str] = {}

        for action in actions:
            missing = self._bind_references(graph, action, creators, snapshot)
            if missing is not None:
                reasons[action.index] = (
                    f"{missing} does not exist and is not created by this batch"
                )
        for action in actions:
            self._apply_hint(graph, action, creators, snapshot)

        for component in nx.strongly_connected_components(graph):
            if len(component) > 1:
                members = ", ".join(str(i) for i in sorted(component))
                for index in component:
                    reasons.setdefault(index, f"dependency cycle between actions {members}")

        for root in sorted(reasons):
            for index in nx.descendants(graph, root):
                reasons.setdefault(index, f"depends on action {root}, which cannot run")

        result = ResolvedBatch()
        for index in sorted(reasons):
            action = by_index[index]
            log.info("action_unresolved", index=index, kind=action.kind, reason=reasons[index])
            result.rejected.append(
                ValidatedAction.rejected(
                    index, action.descriptor, ErrorKind.UNRESOLVED_DEPENDENCY,
                    reasons[index], schema=action.schema,
                )
            )

        graph.remove_nodes_from(reasons)
        for index in nx.lexicographical_topological_sort(graph, key=lambda n: n):
            result.ordered.append(by_index[index])
            result.prerequisites[index] = set(graph.predecessors(index))
        return result

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    @staticmethod
    def _creators(
        actions: list[ValidatedAction], snapshot: DocumentCapabilitySnapshot
    ) -> dict[NameKey, int]:
        creators: dict[NameKey, int] = {}
        for action in actions:
            schema = action.schema
            assert schema is not None
            for ref in schema.introduced_names(action.descriptor, action.params, snapshot.active_sheet):
                first = creators.setdefault(ref.key, action.index)
                if first != action.index:
                    log.warning(
                        "duplicate_creation", entity=str(ref), first=first, duplicate=action.index
                    )
        return creators

    @staticmethod
    def _bind_references(
        graph: nx.DiGraph,
        action: ValidatedAction,
        creators: dict[NameKey, int],
        snapshot: DocumentCapabilitySnapshot,
    ) -> EntityRef | None:
        """Add creator edges for *action*; return the first unbindable reference."""
        schema = action.schema
        assert schema is not None
        missing = None
        for ref in schema.referenced_entities(action.descriptor, snapshot.active_sheet, action.params):
            creator = creators.get(ref.key)
            exists = snapshot.has_entity(ref)
            if creator is not None and creator != action.index and (not exists or creator < action.index):
                graph.add_edge(creator, action.index)
            elif creator is None and not exists and missing is None:
                missing = ref
        return missing

    @staticmethod
    def _apply_hint(
        graph: nx.DiGraph,
        action: ValidatedAction,
        creators: dict[NameKey, int],
        snapshot: DocumentCapabilitySnapshot,
    ) -> None:
        hint = action.descriptor.depends_on
        if not hint:
            return
        matches = sorted(
            index for (_, name), index in creators.items()
            if name == hint.casefold() and index != action.index
        )
        if not matches:
            if not any(snapshot.has_entity(EntityRef(kind, hint)) for kind in EntityKind):
                log.warning("depends_on_unknown", index=action.index, depends_on=hint)
            return
        creator = matches[0]
        if graph.has_edge(creator, action.index):
            return
        if nx.has_path(graph, action.index, creator):
            log.warning(
                "depends_on_conflict", index=action.index, depends_on=hint, creator=creator
            )
            return
        graph.add_edge(creator, action.index)
