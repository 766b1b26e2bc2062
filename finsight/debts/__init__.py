"""Debt amortization package."""

from finsight.debts.amortization import DebtAmortizationEngine, split_emi

__all__ = ["DebtAmortizationEngine", "split_emi"]
