"""CLI command handlers."""

from .run import run_workflow
from .validate import validate_workflow

__all__ = ['run_workflow', 'validate_workflow']
