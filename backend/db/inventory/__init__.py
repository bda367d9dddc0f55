"""
Stock ledger (any number of locations, see db.location).

Models:
- StockMovement (append-only signed deltas; the only source of quantity history)

There is no stored balance table: current stock for an (item, location) pair is
the sum of its movements, see services.ledger.
"""
