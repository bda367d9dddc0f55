"""
Typed errors raised by the stock ledger core.

Every error carries a machine readable ``code`` plus the structured data the
caller needs (ids, quantities). ``to_dict`` is what the HTTP layer returns.

    InventoryError
    +-- NotFoundError
    |   +-- BomEdgeNotFoundError
    +-- InvalidQuantityError
    +-- InsufficientStockError
    +-- InsufficientComponentStockError
    +-- SameLocationError
    +-- SelfReferenceError
    +-- DuplicateEdgeError
    +-- CircularDependencyError
    +-- NotManufacturedError
    +-- NoBomError
    +-- ImmutableMovementError
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from core.converters import format_quantity


class InventoryError(Exception):
    code: str = "INVENTORY_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def details(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.details()}


class NotFoundError(InventoryError):
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} with id {entity_id} not found")

    def details(self) -> dict[str, Any]:
        return {"entity": self.entity, "entity_id": self.entity_id}


class BomEdgeNotFoundError(NotFoundError):
    code = "BOM_EDGE_NOT_FOUND"

    def __init__(self, edge_id: int):
        super().__init__("Bill of material", edge_id)


class InvalidQuantityError(InventoryError):
    code = "INVALID_QUANTITY"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field} {value}: {reason}")

    def details(self) -> dict[str, Any]:
        return {"field": self.field, "value": str(self.value)}


class InsufficientStockError(InventoryError):
    code = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        item_id: int,
        location_id: int,
        available: Decimal,
        requested: Decimal,
        label: str = "requested",
    ):
        self.item_id = item_id
        self.location_id = location_id
        self.available = available
        self.requested = requested
        self.label = label
        super().__init__(
            f"Insufficient stock. Available: {format_quantity(available)}, "
            f"{label}: {format_quantity(requested)}"
        )

    def details(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "location_id": self.location_id,
            "available": format_quantity(self.available),
            self.label: format_quantity(self.requested),
        }


@dataclass(frozen=True)
class ComponentShortage:
    component_item_id: int
    component_name: str
    required: Decimal
    available: Decimal

    def describe(self) -> str:
        return (
            f"{self.component_name} (ID: {self.component_item_id}) "
            f"required {format_quantity(self.required)}, available {format_quantity(self.available)}"
        )


class InsufficientComponentStockError(InventoryError):
    code = "INSUFFICIENT_COMPONENT_STOCK"

    def __init__(self, item_id: int, location_id: int, shortages: list[ComponentShortage]):
        self.item_id = item_id
        self.location_id = location_id
        self.shortages = list(shortages)
        listed = "; ".join(s.describe() for s in self.shortages)
        super().__init__(f"Insufficient component stock: {listed}")

    def details(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "location_id": self.location_id,
            "shortages": [
                {
                    "component_item_id": s.component_item_id,
                    "component_name": s.component_name,
                    "required": format_quantity(s.required),
                    "available": format_quantity(s.available),
                }
                for s in self.shortages
            ],
        }


class SameLocationError(InventoryError):
    code = "SAME_LOCATION"

    def __init__(self, location_id: int):
        self.location_id = location_id
        super().__init__("Cannot transfer stock to the same location")

    def details(self) -> dict[str, Any]:
        return {"location_id": self.location_id}


class SelfReferenceError(InventoryError):
    code = "BOM_SELF_REFERENCE"

    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"An item cannot be a component of itself (item {item_id})")

    def details(self) -> dict[str, Any]:
        return {"item_id": self.item_id}


class DuplicateEdgeError(InventoryError):
    code = "BOM_DUPLICATE_EDGE"

    def __init__(self, parent_item_id: int, component_item_id: int, existing_id: Optional[int] = None):
        self.parent_item_id = parent_item_id
        self.component_item_id = component_item_id
        self.existing_id = existing_id
        super().__init__(
            "BOM entry already exists for this parent-component combination "
            f"(parent {parent_item_id}, component {component_item_id})"
        )

    def details(self) -> dict[str, Any]:
        return {
            "parent_item_id": self.parent_item_id,
            "component_item_id": self.component_item_id,
            "existing_id": self.existing_id,
        }


class CircularDependencyError(InventoryError):
    code = "BOM_CIRCULAR_DEPENDENCY"

    def __init__(self, parent_item_id: int, component_item_id: int):
        self.parent_item_id = parent_item_id
        self.component_item_id = component_item_id
        super().__init__(
            f"Circular dependency detected: item {parent_item_id} is already, directly or "
            f"transitively, a component of item {component_item_id}"
        )

    def details(self) -> dict[str, Any]:
        return {
            "parent_item_id": self.parent_item_id,
            "component_item_id": self.component_item_id,
        }


class NotManufacturedError(InventoryError):
    code = "NOT_MANUFACTURED"

    def __init__(self, item_id: int, item_name: str):
        self.item_id = item_id
        self.item_name = item_name
        super().__init__(f"Item {item_name} (ID: {item_id}) is not marked as manufactured")

    def details(self) -> dict[str, Any]:
        return {"item_id": self.item_id}


class NoBomError(InventoryError):
    code = "NO_BOM"

    def __init__(self, item_id: int, item_name: str):
        self.item_id = item_id
        self.item_name = item_name
        super().__init__(f"Item {item_name} (ID: {item_id}) has no bill of materials")

    def details(self) -> dict[str, Any]:
        return {"item_id": self.item_id}


class ImmutableMovementError(InventoryError):
    code = "IMMUTABLE_MOVEMENT"

    def __init__(self, movement_id: Optional[int], action: str):
        self.movement_id = movement_id
        self.action = action
        super().__init__(
            f"Stock movement {movement_id} cannot be {action}; record an adjustment instead"
        )

    def details(self) -> dict[str, Any]:
        return {"movement_id": self.movement_id}
