"""Query execution engine."""

from .cursor import ResultCursor
from .statement import ExecutionState, Statement

__all__ = ["ExecutionState", "ResultCursor", "Statement"]
