"""Validate command implementation."""

import logging
from argparse import Namespace
from pathlib import Path

from actrunner.exceptions import WorkflowValidationError
from actrunner.loader import WorkflowLoader, describe_workflow
from .run import setup_logging


logger = logging.getLogger(__name__)


def validate_workflow(args: Namespace) -> int:
    """
    Check a workflow's YAML and structure without running anything.

    Returns:
        0 if valid, 1 if the file is missing, 2 on validation errors
    """
    setup_logging(args)

    workflow_path = Path(args.workflow).resolve()
    try:
        workflow = WorkflowLoader().load(workflow_path)
    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1
    except WorkflowValidationError as e:
        for error in e.errors:
            location = f"{error.path}: " if error.path else ""
            logger.error(f"Validation error: {location}{error.message}")
        return e.exit_code

    logger.info(f"Workflow is valid: {workflow_path}")
    describe_workflow(workflow)
    return 0
