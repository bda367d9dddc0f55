"""
stock_api_client.py

A small synchronous client for the Stock Ledger HTTP API, for scripts and
other services that record stock movements remotely.

What it provides:
- Movement helpers: receipts, issues, adjustments, transfers, productions
- Stock queries: levels, current quantity for one item/location, movement history
- Bill of materials CRUD

Environment variables expected:
- STOCK_API_URL: e.g. "https://your-domain.com/api"

Optional:
- STOCK_API_TOKEN: sent as a Bearer token when set (for deployments behind an auth proxy)

Quantities are sent as decimal strings so no precision is lost on the way.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

import requests


class ApiError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    @property
    def error_code(self) -> Optional[str]:
        if isinstance(self.payload, dict):
            return self.payload.get("code")
        return None


def _qty(value) -> str:
    if isinstance(value, float):
        value = repr(value)
    return str(Decimal(str(value)))


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


@dataclass
class StockLedgerApiClient:
    base_url: str
    token: Optional[str] = None
    timeout: float = 30

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, *, json: Any = None, params: Dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        resp = requests.request(
            method,
            url,
            json=json,
            params=params,
            headers=self._headers(),
            timeout=self.timeout,
        )

        if resp.status_code >= 400:
            try:
                payload = resp.json()
            except ValueError:
                payload = None
            raise ApiError(
                f"{method} {path} failed ({resp.status_code}): {resp.text}",
                status_code=resp.status_code,
                payload=payload,
            )

        if resp.status_code == 204:
            return None
        return resp.json()

    # ----------------------------
    # Movement helpers
    # ----------------------------

    def receive_stock(
        self,
        *,
        item_id: int,
        location_id: int,
        quantity,
        supplier_id: Optional[int] = None,
        reference: Optional[str] = None,
    ) -> Any:
        """Calls: POST /inventory/receipts"""
        payload = _drop_none({
            "item_id": item_id,
            "location_id": location_id,
            "quantity": _qty(quantity),
            "supplier_id": supplier_id,
            "reference": reference,
        })
        return self._request("POST", "/inventory/receipts", json=payload)

    def issue_stock(
        self,
        *,
        item_id: int,
        location_id: int,
        quantity,
        customer_id: Optional[int] = None,
        reference: Optional[str] = None,
    ) -> Any:
        """Calls: POST /inventory/issues (409 with code INSUFFICIENT_STOCK when short)"""
        payload = _drop_none({
            "item_id": item_id,
            "location_id": location_id,
            "quantity": _qty(quantity),
            "customer_id": customer_id,
            "reference": reference,
        })
        return self._request("POST", "/inventory/issues", json=payload)

    def adjust_stock(self, *, item_id: int, location_id: int, quantity, reference: Optional[str] = None) -> Any:
        """Calls: POST /inventory/adjustments. ``quantity`` is signed."""
        payload = _drop_none({
            "item_id": item_id,
            "location_id": location_id,
            "quantity": _qty(quantity),
            "reference": reference,
        })
        return self._request("POST", "/inventory/adjustments", json=payload)

    def transfer_stock(
        self,
        *,
        item_id: int,
        from_location_id: int,
        to_location_id: int,
        quantity,
        reference: Optional[str] = None,
    ) -> Any:
        """
        Calls: POST /inventory/transfers
        Returns both movement rows: [Transfer Out, Transfer In].
        """
        payload = _drop_none({
            "item_id": item_id,
            "from_location_id": from_location_id,
            "to_location_id": to_location_id,
            "quantity": _qty(quantity),
            "reference": reference,
        })
        return self._request("POST", "/inventory/transfers", json=payload)

    def produce_item(self, *, item_id: int, location_id: int, quantity, reference: Optional[str] = None) -> Any:
        """
        Calls: POST /inventory/productions
        Returns [Production, *Consumption] movement rows.
        """
        payload = _drop_none({
            "item_id": item_id,
            "location_id": location_id,
            "quantity": _qty(quantity),
            "reference": reference,
        })
        return self._request("POST", "/inventory/productions", json=payload)

    # ----------------------------
    # Stock queries
    # ----------------------------

    def get_stock_levels(self, *, item_id: Optional[int] = None, location_id: Optional[int] = None) -> Any:
        params = _drop_none({"item_id": item_id, "location_id": location_id})
        return self._request("GET", "/inventory/stock", params=params)

    def get_current_quantity(self, *, item_id: int, location_id: int) -> Decimal:
        data = self._request(
            "GET", "/inventory/stock/current", params={"item_id": item_id, "location_id": location_id}
        )
        return Decimal(str(data["quantity"]))

    def get_stock_movements(
        self,
        *,
        item_id: Optional[int] = None,
        location_id: Optional[int] = None,
        movement_type: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Any:
        params = _drop_none({
            "item_id": item_id,
            "location_id": location_id,
            "movement_type": movement_type,
            "start_date": start_date.isoformat() if start_date else None,
            "end_date": end_date.isoformat() if end_date else None,
        })
        return self._request("GET", "/inventory/movements", params=params)

    # ----------------------------
    # Bill of materials
    # ----------------------------

    def get_bill_of_materials(self, *, parent_item_id: Optional[int] = None) -> Any:
        params = _drop_none({"parent_item_id": parent_item_id})
        return self._request("GET", "/bill-of-materials/", params=params)

    def create_bill_of_material(self, *, parent_item_id: int, component_item_id: int, quantity) -> Any:
        payload = {
            "parent_item_id": parent_item_id,
            "component_item_id": component_item_id,
            "quantity": _qty(quantity),
        }
        return self._request("POST", "/bill-of-materials/", json=payload)

    def update_bill_of_material(
        self,
        bom_id: int,
        *,
        parent_item_id: Optional[int] = None,
        component_item_id: Optional[int] = None,
        quantity=None,
    ) -> Any:
        payload = _drop_none({
            "parent_item_id": parent_item_id,
            "component_item_id": component_item_id,
            "quantity": _qty(quantity) if quantity is not None else None,
        })
        return self._request("PATCH", f"/bill-of-materials/{bom_id}", json=payload)

    def delete_bill_of_material(self, bom_id: int) -> Any:
        return self._request("DELETE", f"/bill-of-materials/{bom_id}")


def make_client_from_env() -> StockLedgerApiClient:
    base_url = os.getenv("STOCK_API_URL", "").strip()
    token = os.getenv("STOCK_API_TOKEN", "").strip() or None

    if not base_url:
        raise RuntimeError("Missing STOCK_API_URL")

    return StockLedgerApiClient(base_url=base_url, token=token)


if __name__ == "__main__":
    client = make_client_from_env()

    # Example: print every stock level at or below its reorder level
    # for level in client.get_stock_levels():
    #     if level["below_reorder"]:
    #         print(level["item_name"], level["location_name"], level["current_quantity"])

    print("OK: client configured. Uncomment examples to run.")
