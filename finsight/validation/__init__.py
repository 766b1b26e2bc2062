"""Input validation package."""

from finsight.validation.validator import (
    ExpenseClassifier,
    RecordValidator,
    build_record,
)

__all__ = ["ExpenseClassifier", "RecordValidator", "build_record"]
