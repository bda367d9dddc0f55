from types import SimpleNamespace

from sqlalchemy.dialects import postgresql

from services import bom, ledger, operations


def _pg_sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))


def test_lock_items_statement_locks_rows_in_id_order():
    sql = _pg_sql(ledger.lock_items_statement([3, 1, 2, 3]))

    assert "IN (1, 2, 3)" in sql
    assert "ORDER BY items.id" in sql
    assert sql.rstrip().endswith("FOR UPDATE")


def test_graph_lock_statement_uses_transaction_advisory_lock():
    sql = _pg_sql(bom.graph_lock_statement())
    assert f"pg_advisory_xact_lock({bom.BOM_GRAPH_LOCK_KEY})" in sql


class _RecordingSession:
    def __init__(self, dialect_name):
        self.statements = []
        self._bind = SimpleNamespace(dialect=SimpleNamespace(name=dialect_name))

    def get_bind(self):
        return self._bind

    async def execute(self, stmt):
        self.statements.append(stmt)


async def test_graph_lock_only_taken_on_postgresql():
    pg = _RecordingSession("postgresql")
    await bom._lock_graph(pg)
    assert len(pg.statements) == 1
    assert "pg_advisory_xact_lock" in _pg_sql(pg.statements[0])

    lite = _RecordingSession("sqlite")
    await bom._lock_graph(lite)
    assert lite.statements == []


def _spy_on_ledger(monkeypatch):
    events = []
    real_lock = ledger.lock_items
    real_current = ledger.current_quantity
    real_currents = ledger.current_quantities

    async def lock_items(db, item_ids):
        events.append(("lock", sorted(set(item_ids))))
        await real_lock(db, item_ids)

    async def current_quantity(db, item_id, location_id):
        events.append(("read", [item_id]))
        return await real_current(db, item_id, location_id)

    async def current_quantities(db, item_ids, location_id):
        events.append(("read", sorted(set(item_ids))))
        return await real_currents(db, item_ids, location_id)

    monkeypatch.setattr(ledger, "lock_items", lock_items)
    monkeypatch.setattr(ledger, "current_quantity", current_quantity)
    monkeypatch.setattr(ledger, "current_quantities", current_quantities)
    return events


async def test_issue_and_transfer_lock_before_reading_balance(db, make_item, make_location, monkeypatch):
    a = await make_item()
    l1 = await make_location("L1")
    l2 = await make_location("L2")
    await operations.receive_stock(db, item_id=a, location_id=l1, quantity=10)

    events = _spy_on_ledger(monkeypatch)
    await operations.issue_stock(db, item_id=a, location_id=l1, quantity=1)
    assert events == [("lock", [a]), ("read", [a])]

    events.clear()
    await operations.transfer_stock(db, item_id=a, from_location_id=l1, to_location_id=l2, quantity=1)
    assert events == [("lock", [a]), ("read", [a])]


async def test_produce_locks_item_and_every_component_before_reading(db, make_item, make_location, monkeypatch):
    p = await make_item(manufactured=True)
    c1 = await make_item()
    c2 = await make_item()
    loc = await make_location("Floor")
    await bom.create_bom_edge(db, parent_item_id=p, component_item_id=c1, quantity=1)
    await bom.create_bom_edge(db, parent_item_id=p, component_item_id=c2, quantity=2)
    await operations.receive_stock(db, item_id=c1, location_id=loc, quantity=5)
    await operations.receive_stock(db, item_id=c2, location_id=loc, quantity=5)

    events = _spy_on_ledger(monkeypatch)
    await operations.produce_item(db, item_id=p, location_id=loc, quantity=2)

    assert events == [("lock", sorted([p, c1, c2])), ("read", sorted([c1, c2]))]
