"""
Bill of materials graph.

Edges are stored as a flat list (parent -> component, multiplier). The graph
must stay free of self loops, duplicate edges and cycles; cycles are found on
demand with a depth-first search over the edge list, which is small.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import (
    BomEdgeNotFoundError,
    CircularDependencyError,
    DuplicateEdgeError,
    SelfReferenceError,
)
from core.quantities import MULTIPLIER_INTEGER_DIGITS, parse_quantity
from db.bill_of_material import BillOfMaterial
from services import catalog
from services.unit_of_work import atomic

logger = logging.getLogger(__name__)

# Arbitrary key for pg_advisory_xact_lock; serializes BOM edits across sessions.
BOM_GRAPH_LOCK_KEY = 0x424F4D


def graph_lock_statement():
    return select(func.pg_advisory_xact_lock(BOM_GRAPH_LOCK_KEY))


async def _lock_graph(db: AsyncSession) -> None:
    if db.get_bind().dialect.name == "postgresql":
        await db.execute(graph_lock_statement())


async def _adjacency(db: AsyncSession, exclude_edge_id: Optional[int] = None) -> Dict[int, List[int]]:
    stmt = select(BillOfMaterial.id, BillOfMaterial.parent_item_id, BillOfMaterial.component_item_id)
    graph: Dict[int, List[int]] = {}
    for edge_id, parent_id, component_id in (await db.execute(stmt)).all():
        if edge_id == exclude_edge_id:
            continue
        graph.setdefault(parent_id, []).append(component_id)
    return graph


async def would_create_cycle(
    db: AsyncSession,
    parent_item_id: int,
    component_item_id: int,
    exclude_edge_id: Optional[int] = None,
) -> bool:
    """True if ``parent_item_id`` is reachable from ``component_item_id``.

    Adding parent -> component would then close a loop. The visited set keeps
    the walk finite even if the stored graph already contains a cycle.
    """
    graph = await _adjacency(db, exclude_edge_id)
    visited: Set[int] = set()
    stack = [component_item_id]
    while stack:
        current = stack.pop()
        if current == parent_item_id:
            return True
        if current in visited:
            continue
        visited.add(current)
        stack.extend(child for child in graph.get(current, ()) if child not in visited)
    return False


async def _find_edge(db: AsyncSession, parent_item_id: int, component_item_id: int) -> Optional[BillOfMaterial]:
    res = await db.execute(
        select(BillOfMaterial).where(
            BillOfMaterial.parent_item_id == parent_item_id,
            BillOfMaterial.component_item_id == component_item_id,
        )
    )
    return res.scalar_one_or_none()


async def get_bom_edge(db: AsyncSession, edge_id: int) -> BillOfMaterial:
    res = await db.execute(select(BillOfMaterial).where(BillOfMaterial.id == edge_id))
    edge = res.scalar_one_or_none()
    if edge is None:
        raise BomEdgeNotFoundError(edge_id)
    return edge


async def get_bom_edges(db: AsyncSession, parent_item_id: Optional[int] = None) -> List[BillOfMaterial]:
    stmt = select(BillOfMaterial)
    if parent_item_id is not None:
        stmt = stmt.where(BillOfMaterial.parent_item_id == parent_item_id)
    res = await db.execute(stmt.order_by(BillOfMaterial.id.asc()))
    return list(res.scalars().all())


async def direct_components_of(db: AsyncSession, parent_item_id: int) -> List[Tuple[int, Decimal]]:
    """(component_item_id, multiplier) for the immediate components only."""
    edges = await get_bom_edges(db, parent_item_id)
    return [(e.component_item_id, Decimal(e.quantity)) for e in edges]


async def create_bom_edge(
    db: AsyncSession,
    *,
    parent_item_id: int,
    component_item_id: int,
    quantity,
) -> BillOfMaterial:
    multiplier = parse_quantity("quantity", quantity, max_integer_digits=MULTIPLIER_INTEGER_DIGITS)

    async with atomic(db, "create_bom_edge"):
        await catalog.get_items(db, [parent_item_id, component_item_id])
        if parent_item_id == component_item_id:
            raise SelfReferenceError(parent_item_id)

        await _lock_graph(db)
        existing = await _find_edge(db, parent_item_id, component_item_id)
        if existing is not None:
            raise DuplicateEdgeError(parent_item_id, component_item_id, existing.id)
        if await would_create_cycle(db, parent_item_id, component_item_id):
            raise CircularDependencyError(parent_item_id, component_item_id)

        edge = BillOfMaterial(
            parent_item_id=parent_item_id,
            component_item_id=component_item_id,
            quantity=multiplier,
        )
        db.add(edge)
        await db.flush()
        edge_id = edge.id

    logger.info(
        "bom edge created",
        extra={"bom_id": edge_id, "parent_item_id": parent_item_id,
               "component_item_id": component_item_id, "quantity": multiplier},
    )
    return edge


async def update_bom_edge(
    db: AsyncSession,
    edge_id: int,
    *,
    parent_item_id: Optional[int] = None,
    component_item_id: Optional[int] = None,
    quantity=None,
) -> BillOfMaterial:
    """Apply only the supplied fields.

    When the parent or component changes the edge is re-validated against the
    graph with itself left out, so rewiring never trips over its old position.
    """
    multiplier = (
        parse_quantity("quantity", quantity, max_integer_digits=MULTIPLIER_INTEGER_DIGITS)
        if quantity is not None
        else None
    )

    async with atomic(db, "update_bom_edge"):
        edge = await get_bom_edge(db, edge_id)
        new_parent = parent_item_id if parent_item_id is not None else edge.parent_item_id
        new_component = component_item_id if component_item_id is not None else edge.component_item_id

        if parent_item_id is not None or component_item_id is not None:
            changed = [i for i in (parent_item_id, component_item_id) if i is not None]
            await catalog.get_items(db, changed)
            if new_parent == new_component:
                raise SelfReferenceError(new_parent)

            await _lock_graph(db)
            existing = await _find_edge(db, new_parent, new_component)
            if existing is not None and existing.id != edge.id:
                raise DuplicateEdgeError(new_parent, new_component, existing.id)
            if await would_create_cycle(db, new_parent, new_component, exclude_edge_id=edge.id):
                raise CircularDependencyError(new_parent, new_component)

        edge.parent_item_id = new_parent
        edge.component_item_id = new_component
        if multiplier is not None:
            edge.quantity = multiplier
        await db.flush()

    logger.info(
        "bom edge updated",
        extra={"bom_id": edge_id, "parent_item_id": new_parent,
               "component_item_id": new_component, "quantity": edge.quantity},
    )
    return edge


async def delete_bom_edge(db: AsyncSession, edge_id: int) -> bool:
    """Remove an edge; False if it did not exist. Removing an edge cannot break the graph."""
    async with atomic(db, "delete_bom_edge"):
        res = await db.execute(select(BillOfMaterial).where(BillOfMaterial.id == edge_id))
        edge = res.scalar_one_or_none()
        if edge is None:
            return False
        await db.delete(edge)

    logger.info("bom edge deleted", extra={"bom_id": edge_id})
    return True
