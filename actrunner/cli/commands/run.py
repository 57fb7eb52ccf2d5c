"""Run command implementation."""

import logging
from argparse import Namespace
from pathlib import Path
from typing import Optional

from actrunner.actions.registry import MockRegistry, mocks_dir_for
from actrunner.context import RunPolicy
from actrunner.exceptions import (
    ToolVersionMismatchError,
    WorkflowAbortedError,
    WorkflowValidationError,
)
from actrunner.loader import WorkflowLoader, describe_workflow, find_repo_root
from actrunner.prompts import ConsolePrompt
from actrunner.security.secrets import SecretsManager, SecretsMaskingFilter
from actrunner.state import print_summary
from actrunner.workflow.executor import WorkflowExecutor


logger = logging.getLogger(__name__)


def setup_logging(args: Namespace, secrets_manager: Optional[SecretsManager] = None) -> None:
    """Configure root logging from the command line; mask secrets when a manager is given."""
    log_level = getattr(logging, args.log_level.upper())
    if args.debug:
        log_level = logging.DEBUG
    elif args.quiet:
        log_level = logging.ERROR
    elif args.verbose:
        log_level = logging.DEBUG

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logging.getLogger().setLevel(log_level)

    if secrets_manager is not None:
        masking_filter = SecretsMaskingFilter(secrets_manager)
        for handler in logging.getLogger().handlers:
            handler.addFilter(masking_filter)


def build_policy(args: Namespace) -> RunPolicy:
    """
    Translate command line options into a RunPolicy.

    Raises:
        ValueError: If --lines is negative
    """
    if args.lines < 0:
        raise ValueError(f"--lines must be zero or positive, got {args.lines}")

    return RunPolicy(
        dry_run=args.dry_run,
        run_all_jobs=args.yes_all,
        run_all_commands=args.yes_all,
        confirm_jobs=not args.no_job_prompts,
        show_full_output=args.full,
        truncate_lines=args.lines,
    )


def run_workflow(args: Namespace) -> int:
    """
    Load, validate and run a workflow interactively.

    Returns:
        0 when every job finished without failure, 1 on failure, abort or
        tool mismatch, 2 on validation errors
    """
    secrets_manager = SecretsManager()
    setup_logging(args, secrets_manager)

    executor = None
    try:
        workflow_path = Path(args.workflow).resolve()
        if not workflow_path.exists():
            logger.error(f"Workflow file not found: {workflow_path}")
            return 1

        logger.info(f"Reading workflow file: {workflow_path}")
        loader = WorkflowLoader()
        try:
            workflow = loader.load(workflow_path)
        except WorkflowValidationError as e:
            for error in e.errors:
                location = f"{error.path}: " if error.path else ""
                logger.error(f"Validation error: {location}{error.message}")
            return e.exit_code

        logger.info("Workflow structure is valid")
        describe_workflow(workflow)

        repo_root = Path(args.repo_root).resolve() if args.repo_root else find_repo_root(workflow_path)
        logger.info(f"Repository root: {repo_root}")

        policy = build_policy(args)
        if policy.dry_run:
            logger.info("[DRY RUN] Commands are previewed, not executed")

        executor = WorkflowExecutor(
            workflow=workflow,
            repo_root=repo_root,
            prompt=ConsolePrompt(),
            policy=policy,
            mock_registry=MockRegistry(mocks_dir_for(workflow_path)),
            secrets_manager=secrets_manager,
        )

        try:
            result = executor.execute()
        except WorkflowAbortedError as e:
            logger.warning(str(e))
            print_summary(executor.result)
            return 1

        print_summary(result)
        return 1 if result.failed else 0

    except ToolVersionMismatchError as e:
        logger.error(f"Tool version check failed: {e}")
        if executor is not None:
            print_summary(executor.result)
        return 1
    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Validation error: {e}")
        return 2
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1
