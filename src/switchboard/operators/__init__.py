"""Operator catalog."""

from switchboard.operators.registry import OPERATOR_NAME_PATTERN, Operator, OperatorCatalog

__all__ = ["OPERATOR_NAME_PATTERN", "Operator", "OperatorCatalog"]
