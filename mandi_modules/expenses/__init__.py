"""Expense categories and expenses."""

from mandi_modules.expenses.service import ExpenseInfo, ExpenseService

__all__ = ["ExpenseInfo", "ExpenseService"]
