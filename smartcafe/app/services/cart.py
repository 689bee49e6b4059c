"""Customer cart held client-side until the order is placed."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List

from ..billing.calculator import BillTotals, compute_bill
from ..domain.models import MenuItem


@dataclass
class CartLine:
    item_id: str
    name: str
    price: Decimal
    quantity: int = 1

    def to_item(self) -> Dict[str, Any]:
        return {
            "id": self.item_id,
            "name": self.name,
            "price": float(self.price),
            "quantity": self.quantity,
        }


@dataclass
class Cart:
    lines: List[CartLine] = field(default_factory=list)

    def _find(self, item_id: str) -> CartLine | None:
        for line in self.lines:
            if line.item_id == item_id:
                return line
        return None

    def add(self, item: MenuItem, quantity: int = 1) -> None:
        """Add ``quantity`` units of ``item``; an item already present is incremented."""

        if quantity <= 0:
            return
        line = self._find(item.id)
        if line is None:
            self.lines.append(CartLine(item.id, item.name, item.price, quantity))
        else:
            line.quantity += quantity

    def remove(self, item_id: str) -> None:
        self.lines = [line for line in self.lines if line.item_id != item_id]

    def update_quantity(self, item_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove(item_id)
            return
        line = self._find(item_id)
        if line is not None:
            line.quantity = quantity

    def clear(self) -> None:
        self.lines = []

    @property
    def count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def is_empty(self) -> bool:
        return not self.lines

    def items(self) -> List[Dict[str, Any]]:
        return [line.to_item() for line in self.lines]

    def totals(self, tax_percent: Any) -> BillTotals:
        return compute_bill(self.items(), tax_percent)
