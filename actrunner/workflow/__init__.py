"""Workflow evaluation module.

The scheduler lives in actrunner.workflow.executor and is imported from there.
"""

from .conditions import ConditionEvaluator
from .expressions import parse_expression
from .matrix import MatrixExpander

__all__ = ['ConditionEvaluator', 'MatrixExpander', 'parse_expression']
