"""Monthly budget and insight calculators."""

from finsight.budget.calculator import BudgetCalculator
from finsight.budget.insights import InsightCalculator

__all__ = ["BudgetCalculator", "InsightCalculator"]
