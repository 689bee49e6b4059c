"""Bill arithmetic shared by every order view."""

from .calculator import BillTotals, bill_for_order, compute_bill, format_amount

__all__ = ["BillTotals", "bill_for_order", "compute_bill", "format_amount"]
