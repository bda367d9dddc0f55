from decimal import Decimal

import pytest

from core.exceptions import (
    ImmutableMovementError,
    InsufficientComponentStockError,
    InsufficientStockError,
    InvalidQuantityError,
    NoBomError,
    NotFoundError,
    NotManufacturedError,
    SameLocationError,
)
from services import bom, ledger, operations


async def qty(db, item_id, location_id):
    return await ledger.current_quantity(db, item_id, location_id)


async def test_basic_ledger_flow(db, make_item, make_location):
    a = await make_item("A", reorder_level="10")
    l1 = await make_location("L1")
    l2 = await make_location("L2")

    await operations.receive_stock(db, item_id=a, location_id=l1, quantity=100)
    assert await qty(db, a, l1) == Decimal("100")

    await operations.issue_stock(db, item_id=a, location_id=l1, quantity=30)
    assert await qty(db, a, l1) == Decimal("70")

    out, into = await operations.transfer_stock(
        db, item_id=a, from_location_id=l1, to_location_id=l2, quantity=20, reference="Restock"
    )
    assert await qty(db, a, l1) == Decimal("50")
    assert await qty(db, a, l2) == Decimal("20")
    assert (out.movement_type, out.quantity, out.location_id) == ("Transfer Out", Decimal("-20"), l1)
    assert (into.movement_type, into.quantity, into.location_id) == ("Transfer In", Decimal("20"), l2)
    assert out.correlation_id == into.correlation_id
    assert out.date == into.date
    assert out.reference == into.reference == "Restock"

    await operations.adjust_stock(db, item_id=a, location_id=l1, quantity=-5)
    assert await qty(db, a, l1) == Decimal("45")


async def test_production_consumes_direct_components(db, make_item, make_location):
    p = await make_item("P", manufactured=True)
    c1 = await make_item("C1")
    c2 = await make_item("C2")
    l1 = await make_location("L1")
    await bom.create_bom_edge(db, parent_item_id=p, component_item_id=c1, quantity=2)
    await bom.create_bom_edge(db, parent_item_id=p, component_item_id=c2, quantity="1.5")
    await operations.receive_stock(db, item_id=c1, location_id=l1, quantity=20)
    await operations.receive_stock(db, item_id=c2, location_id=l1, quantity=15)

    movements = await operations.produce_item(db, item_id=p, location_id=l1, quantity=5, reference="WO-7")

    production, *consumptions = movements
    assert (production.movement_type, production.item_id, production.quantity) == ("Production", p, Decimal("5"))
    assert production.reference == "WO-7"
    assert [(m.item_id, m.quantity) for m in consumptions] == [(c1, Decimal("-10")), (c2, Decimal("-7.5"))]
    assert all(m.movement_type == "Consumption" for m in consumptions)
    assert all(m.reference == "Production of P - WO-7" for m in consumptions)
    assert len({m.correlation_id for m in movements}) == 1
    assert len({m.date for m in movements}) == 1

    assert await qty(db, p, l1) == Decimal("5")
    assert await qty(db, c1, l1) == Decimal("10")
    assert await qty(db, c2, l1) == Decimal("7.5")


async def test_production_with_fractional_quantity_and_multiplier(db, make_item, make_location):
    p = await make_item(manufactured=True)
    c = await make_item()
    loc = await make_location("Floor")
    await bom.create_bom_edge(db, parent_item_id=p, component_item_id=c, quantity="1.5")
    await operations.receive_stock(db, item_id=c, location_id=loc, quantity=4)

    movements = await operations.produce_item(db, item_id=p, location_id=loc, quantity="2.5")

    assert movements[1].quantity == Decimal("-3.75")
    assert movements[1].reference == "Production of Item 1"
    assert await qty(db, c, loc) == Decimal("0.25")


async def test_issue_more_than_available_changes_nothing(db, make_item, make_location):
    a = await make_item()
    l1 = await make_location("L1")
    await operations.receive_stock(db, item_id=a, location_id=l1, quantity=100)

    with pytest.raises(InsufficientStockError) as exc:
        await operations.issue_stock(db, item_id=a, location_id=l1, quantity=150)

    assert str(exc.value) == "Insufficient stock. Available: 100, requested: 150"
    assert exc.value.available == Decimal("100")
    assert exc.value.requested == Decimal("150")
    assert await qty(db, a, l1) == Decimal("100")
    assert len(await ledger.get_movements(db, item_id=a)) == 1


async def test_issue_exactly_available_reaches_zero(db, make_item, make_location):
    a = await make_item()
    l1 = await make_location("L1")
    await operations.receive_stock(db, item_id=a, location_id=l1, quantity="2.5")

    await operations.issue_stock(db, item_id=a, location_id=l1, quantity="2.5")
    assert await qty(db, a, l1) == Decimal("0")


async def test_transfer_checks_source_balance(db, make_item, make_location):
    a = await make_item()
    l1 = await make_location("L1")
    l2 = await make_location("L2")
    await operations.receive_stock(db, item_id=a, location_id=l2, quantity=50)

    with pytest.raises(InsufficientStockError) as exc:
        await operations.transfer_stock(db, item_id=a, from_location_id=l1, to_location_id=l2, quantity=1)
    assert "required: 1" in str(exc.value)
    assert exc.value.details()["required"] == "1"
    assert "requested" not in exc.value.details()
    assert await qty(db, a, l2) == Decimal("50")


async def test_transfer_to_same_location_rejected(db, make_item, make_location):
    a = await make_item()
    l1 = await make_location("L1")
    await operations.receive_stock(db, item_id=a, location_id=l1, quantity=5)

    with pytest.raises(SameLocationError):
        await operations.transfer_stock(db, item_id=a, from_location_id=l1, to_location_id=l1, quantity=1)
    assert len(await ledger.get_movements(db, item_id=a)) == 1


async def test_adjustment_may_go_negative_and_accepts_zero(db, make_item, make_location):
    a = await make_item()
    l1 = await make_location("L1")

    await operations.adjust_stock(db, item_id=a, location_id=l1, quantity=-3, reference="Count")
    await operations.adjust_stock(db, item_id=a, location_id=l1, quantity=0)

    assert await qty(db, a, l1) == Decimal("-3")


@pytest.mark.parametrize(
    "quantity",
    [0, -2, "0.00001", "NaN", "1000000000000", "1E+40", "12345678901234567890123456.12345"],
)
async def test_receive_rejects_bad_quantities(db, make_item, make_location, quantity):
    a = await make_item()
    l1 = await make_location("L1")
    with pytest.raises(InvalidQuantityError):
        await operations.receive_stock(db, item_id=a, location_id=l1, quantity=quantity)


async def test_unknown_references_raise_not_found(db, make_item, make_location):
    a = await make_item()
    l1 = await make_location("L1")

    with pytest.raises(NotFoundError):
        await operations.receive_stock(db, item_id=999, location_id=l1, quantity=1)
    with pytest.raises(NotFoundError):
        await operations.receive_stock(db, item_id=a, location_id=999, quantity=1)
    with pytest.raises(NotFoundError):
        await operations.receive_stock(db, item_id=a, location_id=l1, quantity=1, supplier_id=999)
    with pytest.raises(NotFoundError):
        await operations.issue_stock(db, item_id=a, location_id=l1, quantity=1, customer_id=999)
    assert await ledger.get_movements(db) == []


async def test_supplier_and_customer_annotate_reference(
    db, make_item, make_location, make_supplier, make_customer
):
    a = await make_item()
    l1 = await make_location("L1")
    supplier = await make_supplier("Acme")
    customer = await make_customer("Velo")

    receipt = await operations.receive_stock(
        db, item_id=a, location_id=l1, quantity=10, supplier_id=supplier, reference="  PO-1 "
    )
    issue = await operations.issue_stock(db, item_id=a, location_id=l1, quantity=4, customer_id=customer)

    assert receipt.reference == f"PO-1 - Supplier: Acme (ID: {supplier})"
    assert issue.reference == f"Customer: Velo (ID: {customer})"


async def test_produce_requires_manufactured_item(db, make_item, make_location):
    a = await make_item("Plain")
    c = await make_item()
    l1 = await make_location("L1")
    await bom.create_bom_edge(db, parent_item_id=a, component_item_id=c, quantity=1)

    with pytest.raises(NotManufacturedError):
        await operations.produce_item(db, item_id=a, location_id=l1, quantity=1)


async def test_produce_requires_bom(db, make_item, make_location):
    p = await make_item(manufactured=True)
    l1 = await make_location("L1")

    with pytest.raises(NoBomError):
        await operations.produce_item(db, item_id=p, location_id=l1, quantity=1)


async def test_produce_lists_every_short_component(db, make_item, make_location):
    p = await make_item("P", manufactured=True)
    c1 = await make_item("C1")
    c2 = await make_item("C2")
    c3 = await make_item("C3")
    l1 = await make_location("L1")
    for component, multiplier in ((c1, 2), (c2, 1), (c3, 3)):
        await bom.create_bom_edge(db, parent_item_id=p, component_item_id=component, quantity=multiplier)
    await operations.receive_stock(db, item_id=c1, location_id=l1, quantity=1)
    await operations.receive_stock(db, item_id=c2, location_id=l1, quantity=10)

    with pytest.raises(InsufficientComponentStockError) as exc:
        await operations.produce_item(db, item_id=p, location_id=l1, quantity=2)

    shortages = {s.component_item_id: s for s in exc.value.shortages}
    assert set(shortages) == {c1, c3}
    assert (shortages[c1].required, shortages[c1].available) == (Decimal("4"), Decimal("1"))
    assert (shortages[c3].required, shortages[c3].available) == (Decimal("6"), Decimal("0"))
    assert await qty(db, p, l1) == Decimal("0")
    assert await qty(db, c2, l1) == Decimal("10")


async def test_produce_does_not_explode_sub_assemblies(db, make_item, make_location):
    top = await make_item(manufactured=True)
    sub = await make_item(manufactured=True)
    raw = await make_item()
    l1 = await make_location("L1")
    await bom.create_bom_edge(db, parent_item_id=top, component_item_id=sub, quantity=1)
    await bom.create_bom_edge(db, parent_item_id=sub, component_item_id=raw, quantity=1)
    await operations.receive_stock(db, item_id=raw, location_id=l1, quantity=10)

    with pytest.raises(InsufficientComponentStockError):
        await operations.produce_item(db, item_id=top, location_id=l1, quantity=1)
    assert await qty(db, raw, l1) == Decimal("10")


async def test_transfer_is_all_or_nothing(db, make_item, make_location, monkeypatch):
    a = await make_item()
    l1 = await make_location("L1")
    l2 = await make_location("L2")
    await operations.receive_stock(db, item_id=a, location_id=l1, quantity=10)

    real_append = ledger.append_movement
    calls = {"n": 0}

    def flaky_append(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 2:
            raise RuntimeError("disk full")
        return real_append(*args, **kwargs)

    monkeypatch.setattr(ledger, "append_movement", flaky_append)

    with pytest.raises(RuntimeError):
        await operations.transfer_stock(db, item_id=a, from_location_id=l1, to_location_id=l2, quantity=4)

    monkeypatch.undo()
    assert await qty(db, a, l1) == Decimal("10")
    assert await qty(db, a, l2) == Decimal("0")
    assert len(await ledger.get_movements(db, item_id=a)) == 1


async def test_movements_cannot_be_edited_or_deleted(db, make_item, make_location):
    a = await make_item()
    l1 = await make_location("L1")
    movement = await operations.receive_stock(db, item_id=a, location_id=l1, quantity=10)

    movement.quantity = Decimal("1")
    with pytest.raises(ImmutableMovementError):
        await db.flush()
    await db.rollback()

    movement = (await ledger.get_movements(db, item_id=a))[0]
    await db.delete(movement)
    with pytest.raises(ImmutableMovementError):
        await db.flush()
    await db.rollback()

    assert await qty(db, a, l1) == Decimal("10")


async def test_produce_rejects_consumption_too_large_for_the_ledger(db, make_item, make_location):
    p = await make_item(manufactured=True)
    c = await make_item()
    loc = await make_location("Floor")
    await bom.create_bom_edge(db, parent_item_id=p, component_item_id=c, quantity="100000")

    with pytest.raises(InvalidQuantityError):
        await operations.produce_item(db, item_id=p, location_id=loc, quantity="100000000")
    assert await ledger.get_movements(db) == []


async def test_adjustment_rejects_out_of_range_negative(db, make_item, make_location):
    a = await make_item()
    l1 = await make_location("L1")
    with pytest.raises(InvalidQuantityError):
        await operations.adjust_stock(db, item_id=a, location_id=l1, quantity="-1000000000000")
