"""Binds every Reference in the model to its Components entry."""

from __future__ import annotations

from typing import Iterator, List, Optional, Set, Tuple

from ..annotations.ast import UnresolvedConstant
from ..errors import Diagnostic, ResolutionError
from ..logging import get_logger
from .model import COLLECTIONS, DocumentModel, Reference, Schema, location_of, walk


def references(model: DocumentModel) -> Iterator[Tuple[str, Reference]]:
    """Yield ``(entity path, reference)`` for every reference in document order."""
    for entity, node in walk(model):
        if isinstance(node, Reference):
            yield entity, node


class ReferenceResolver:
    """Single resolution pass; reports each broken reference exactly once."""

    def __init__(self) -> None:
        self.logger = get_logger("resolver")

    def resolve(self, model: DocumentModel) -> List[Diagnostic]:
        diagnostics: List[Diagnostic] = []
        bound = 0
        for entity, ref in references(model):
            error = self._bind(model, entity, ref)
            if error is not None:
                diagnostics.append(error.to_diagnostic())
            elif ref.resolved:
                bound += 1
        diagnostics.extend(self._alias_cycles(model))
        recursive = self._mark_recursion(model)
        self.logger.debug(
            "Resolved %d references (%d recursive, %d errors)", bound, recursive, len(diagnostics)
        )
        return diagnostics

    @staticmethod
    def _bind(model: DocumentModel, entity: str, ref: Reference) -> Optional[ResolutionError]:
        if isinstance(ref.name, UnresolvedConstant):
            return None
        pointer = ref.pointer
        if ref.collection not in COLLECTIONS:
            return ResolutionError(
                f"reference {pointer} at {entity} names unknown collection '{ref.collection}'",
                ref.location,
                entity=entity,
                target=pointer,
            )
        if ref.collection != ref.expected:
            return ResolutionError(
                f"reference {pointer} at {entity} points into {ref.collection}, "
                f"expected {ref.expected}",
                ref.location,
                entity=entity,
                target=pointer,
            )
        registry = model.components.collection(ref.collection) or {}
        target = registry.get(ref.name)
        if target is None:
            return ResolutionError(
                f"dangling reference {pointer} at {entity}",
                ref.location,
                entity=entity,
                target=pointer,
            )
        ref.target = target
        return None

    @staticmethod
    def _alias_cycles(model: DocumentModel) -> List[Diagnostic]:
        diagnostics: List[Diagnostic] = []
        for collection, entries in model.components.collections():
            if collection == "schemas":
                continue
            reported: Set[str] = set()
            for name, node in entries.items():
                chain = [name]
                current = node
                while isinstance(current, Reference) and current.resolved:
                    following = str(current.name)
                    if following in chain:
                        cycle = chain[chain.index(following):]
                        if not reported.intersection(cycle):
                            entity = f"components.{collection}.{cycle[0]}"
                            diagnostics.append(
                                ResolutionError(
                                    f"{collection} aliases form a cycle: "
                                    + " -> ".join([*cycle, following]),
                                    location_of(entries[cycle[0]]),
                                    entity=entity,
                                    target=f"#/components/{collection}/{following}",
                                ).to_diagnostic()
                            )
                        reported.update(cycle)
                        break
                    chain.append(following)
                    current = current.target
        return diagnostics

    @staticmethod
    def _mark_recursion(model: DocumentModel) -> int:
        """Flag back-edge references of schema cycles; returns how many were flagged."""
        on_stack: Set[int] = set()
        done: Set[int] = set()
        flagged = 0

        def visit(node: object) -> None:
            nonlocal flagged
            key = id(node)
            if key in done or key in on_stack:
                return
            on_stack.add(key)
            children: List[object] = []
            if isinstance(node, Reference):
                if node.target is not None:
                    if id(node.target) in on_stack:
                        node.recursive = True
                        flagged += 1
                    else:
                        children.append(node.target)
            elif isinstance(node, Schema):
                children.extend(node.properties.values())
                if node.items is not None:
                    children.append(node.items)
            for child in children:
                visit(child)
            on_stack.discard(key)
            done.add(key)

        for schema in model.components.schemas.values():
            visit(schema)
        return flagged


__all__ = ["ReferenceResolver", "references"]
