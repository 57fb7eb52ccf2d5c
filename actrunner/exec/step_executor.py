"""
Step executor module for running one workflow step.

A step is either a shell command (`run:`), an action (`uses:`) or neither
(a placeholder). Commands are confirmed with the user, executed through the
CommandRunner and their structured outputs recorded in the WorkflowContext.
"""

import logging
import os
import re
import time
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .command import DEFAULT_CI_ENV, CommandRunner
from .output_capture import OUTPUT_ENV_VAR, OutputCapture
from ..actions.registry import MockRegistry, strip_version
from ..actions.terraform import TerraformVersionCheck, is_setup_terraform
from ..context import RunPolicy, WorkflowContext
from ..exceptions import WorkflowAbortedError
from ..prompts import Confirmation
from ..security.secrets import SecretsManager
from ..state import FAILED, SKIPPED, SUCCESS, Status
from ..variables.resolver import ExpressionResolver, to_expression_string
from ..workflow.conditions import ConditionEvaluator

logger = logging.getLogger(__name__)


def step_name_for(step: Dict[str, Any], index: int) -> str:
    """Display name of a step; index is 0-based."""
    return str(step.get('name') or f"Step {index + 1}")


def step_id_for(step: Dict[str, Any], index: int) -> str:
    """
    Id used for steps.<id>.outputs.

    Explicit ids are kept; otherwise the name is lower-cased and every
    character outside [a-z0-9-] becomes '-'.
    """
    if step.get('id'):
        return str(step['id'])
    return re.sub(r'[^a-z0-9-]', '-', step_name_for(step, index).lower())


@dataclass
class StepOutcome:
    """Result of running one step."""
    status: Status
    halt_job: bool = False


class StepExecutor:
    """
    Executes workflow steps.
    Handles conditions, working directories, confirmation, command execution
    and action dispatch.
    """

    # Seconds a placeholder step (neither run nor uses) pretends to work
    placeholder_delay = 0.5

    def __init__(
        self,
        workflow: Dict[str, Any],
        context: WorkflowContext,
        policy: RunPolicy,
        resolver: ExpressionResolver,
        condition_evaluator: ConditionEvaluator,
        prompt,
        repo_root: Union[str, Path],
        command_runner: Optional[CommandRunner] = None,
        mock_registry: Optional[MockRegistry] = None,
        secrets_manager: Optional[SecretsManager] = None,
        output_capture: Optional[OutputCapture] = None,
        terraform_check: Optional[TerraformVersionCheck] = None
    ):
        """
        Initialize step executor.

        Args:
            workflow: Parsed workflow
            context: Run context receiving step outputs
            policy: Run policy (dry run, run-all modes, output display)
            resolver: Expression resolver
            condition_evaluator: Evaluator for step `if:` conditions
            prompt: User prompt collaborator
            repo_root: Repository root; relative working directories are joined to it
            command_runner: Runs shell commands
            mock_registry: Mocks for `uses:` actions
            secrets_manager: Masks secret values in displayed output
            output_capture: Creates and parses GITHUB_OUTPUT files
            terraform_check: Version gate for hashicorp/setup-terraform
        """
        self.workflow = workflow
        self.context = context
        self.policy = policy
        self.resolver = resolver
        self.condition_evaluator = condition_evaluator
        self.prompt = prompt
        self.repo_root = str(repo_root)
        self.command_runner = command_runner or CommandRunner()
        self.mock_registry = mock_registry or MockRegistry()
        self.secrets_manager = secrets_manager or resolver.secrets_manager
        self.output_capture = output_capture or OutputCapture()
        self.terraform_check = terraform_check or TerraformVersionCheck(self.command_runner)

    def run(
        self,
        step: Dict[str, Any],
        index: int,
        job_name: str,
        job: Dict[str, Any],
        matrix: Optional[Dict[str, Any]] = None,
        job_env: Optional[Dict[str, str]] = None
    ) -> StepOutcome:
        """
        Run one step.

        Args:
            step: Step definition
            index: 0-based position in the job
            job_name: Owning job
            job: Owning job definition
            matrix: Bindings of the current job instance
            job_env: Resolved job-level environment

        Returns:
            StepOutcome with the step status and whether the job should stop

        Raises:
            WorkflowAbortedError: If the user quits
            ToolVersionMismatchError: If a tool setup step fails
        """
        name = step_name_for(step, index)
        step_id = step_id_for(step, index)
        logger.info(f"Step: {name}")

        if step.get('if') is not None:
            if not self.condition_evaluator.evaluate_step_condition(
                step['if'], self.workflow, job_name, self.context, matrix
            ):
                logger.info(f"Skipping step (condition not met: {step['if']})")
                return StepOutcome(SKIPPED)

        working_dir = self.resolve_working_dir(step, job, job_name, step_id, matrix)

        if step.get('run') is not None:
            return self._run_command(step, step_id, job_name, working_dir, matrix, job_env)

        if step.get('uses'):
            return self._run_action(step, step_id, job_name, working_dir, matrix)

        if self.policy.dry_run:
            logger.info(f"[PREVIEW] Would run step: {name}")
        else:
            logger.info(f"Running step: {name}")
            time.sleep(self.placeholder_delay)
        return StepOutcome(SUCCESS)

    def resolve_working_dir(
        self,
        step: Dict[str, Any],
        job: Dict[str, Any],
        job_name: str,
        step_id: str,
        matrix: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Working directory for a step.

        First set wins: step working-directory, job defaults, workflow
        defaults, repository root. Relative paths are joined to the
        repository root.
        """
        candidate = (
            step.get('working-directory')
            or _default_working_dir(job)
            or _default_working_dir(self.workflow)
        )
        if not candidate:
            return self.repo_root

        resolved = self.resolver.resolve_in_command(
            to_expression_string(candidate), self.workflow, step_id, job_name, self.context, matrix
        )
        return os.path.normpath(os.path.join(self.repo_root, resolved))

    def build_env(
        self,
        step: Dict[str, Any],
        step_id: str,
        job_name: str,
        matrix: Optional[Dict[str, Any]] = None,
        job_env: Optional[Dict[str, str]] = None
    ) -> Dict[str, str]:
        """
        Environment for a command: CI defaults, then workflow, job and step env.
        """
        env = dict(DEFAULT_CI_ENV)
        env.update(self._resolve_env(self.workflow.get('env'), step_id, job_name, matrix))
        env.update(job_env or {})
        env.update(self._resolve_env(step.get('env'), step_id, job_name, matrix))
        return env

    def _resolve_env(
        self,
        env: Optional[Dict[str, Any]],
        step_id: str,
        job_name: str,
        matrix: Optional[Dict[str, Any]]
    ) -> Dict[str, str]:
        if not isinstance(env, dict):
            return {}
        return {
            str(key): self.resolver.resolve_in_command(
                to_expression_string(value), self.workflow, step_id, job_name, self.context, matrix
            )
            for key, value in env.items()
        }

    def _run_command(
        self,
        step: Dict[str, Any],
        step_id: str,
        job_name: str,
        working_dir: str,
        matrix: Optional[Dict[str, Any]],
        job_env: Optional[Dict[str, str]]
    ) -> StepOutcome:
        command = self.resolver.resolve_in_command(
            to_expression_string(step['run']), self.workflow, step_id, job_name, self.context, matrix
        )

        if self.policy.dry_run:
            logger.info(f"[PREVIEW] Would execute: {command} (in {working_dir})")
            return StepOutcome(SUCCESS)

        logger.info(f"Command: {command}")
        logger.info(f"Working directory: {working_dir}")

        if not self.policy.run_all_commands:
            answer = self.prompt.confirm(
                "Please review the command above. Do you trust this command and want to run it on your computer?"
            )
            if answer == Confirmation.QUIT:
                logger.info("Quitting workflow execution")
                raise WorkflowAbortedError()
            if answer == Confirmation.ALL:
                self.policy.run_all_commands = True
                logger.info("[RUN ALL MODE ACTIVATED] Will auto-execute all remaining commands")
            elif answer != Confirmation.YES:
                logger.info("Skipping command")
                return StepOutcome(SKIPPED)

        env = self.build_env(step, step_id, job_name, matrix, job_env)
        output_file = self.output_capture.create_output_file()
        env[OUTPUT_ENV_VAR] = str(output_file)
        try:
            result = self.command_runner.execute(
                command, working_dir, env, self.context.toolchain_version
            )
            outputs = self.output_capture.read_outputs(output_file)
        finally:
            self.output_capture.cleanup(output_file)

        self._show_output(result.output)
        if result.error:
            self._show_output(result.error, stream='stderr')

        if outputs:
            self._record_outputs(job_name, step_id, outputs)

        if result.success:
            logger.info("Command completed successfully")
            return StepOutcome(SUCCESS)

        logger.error(f"Command failed with exit code {result.exit_code}")
        return StepOutcome(FAILED, halt_job=self._halt_after_failure())

    def _halt_after_failure(self) -> bool:
        """Ask whether the job goes on after a failed command."""
        if self.policy.run_all_commands:
            logger.warning("Continuing with the next step (run all mode)")
            return False

        answer = self.prompt.confirm("Command failed. Do you want to continue with the next step?")
        if answer == Confirmation.QUIT:
            logger.info("Quitting workflow execution")
            raise WorkflowAbortedError()
        if answer == Confirmation.ALL:
            self.policy.run_all_commands = True
            logger.info("[RUN ALL MODE ACTIVATED] Will auto-execute all remaining commands")
            return False
        if answer == Confirmation.YES:
            return False

        logger.info("Stopping job after failed command")
        return True

    def _show_output(self, text: str, stream: str = 'stdout') -> None:
        if not text or not text.strip():
            return

        text = self.secrets_manager.mask_text(text.rstrip('\n'))
        if not self.policy.show_full_output:
            text = self.output_capture.truncate(text, self.policy.truncate_lines).text

        if stream == 'stderr':
            logger.warning(f"[STDERR]\n{text}")
        else:
            logger.info(f"[OUTPUT]\n{text}")

    def _record_outputs(self, job_name: str, step_id: str, outputs: Dict[str, str]) -> None:
        self.context.set_step_outputs(job_name, step_id, outputs)
        for key, value in outputs.items():
            logger.info(f"[OUTPUT] {key} = \"{self.secrets_manager.mask_text(value)}\"")

    def _run_action(
        self,
        step: Dict[str, Any],
        step_id: str,
        job_name: str,
        working_dir: str,
        matrix: Optional[Dict[str, Any]]
    ) -> StepOutcome:
        action = str(step['uses'])
        action_name = strip_version(action)
        logger.info(f"Running action: {action}")

        if is_setup_terraform(action):
            self._setup_terraform(step, job_name, working_dir, matrix)
            return StepOutcome(SUCCESS)

        if action_name.startswith('actions/checkout'):
            logger.info("Skipping checkout (the local working copy is used)")
            return StepOutcome(SKIPPED)

        mock = self.mock_registry.get(action)
        if mock is None:
            logger.info(f"No mock for {action_name}; action is not simulated")
            return StepOutcome(SUCCESS)

        inputs = {
            str(key): self.resolver.resolve_in_command(
                to_expression_string(value), self.workflow, step_id, job_name, self.context, matrix
            )
            for key, value in (step.get('with') or {}).items()
        }
        invocation = {
            'step': step,
            'workflow': self.workflow,
            'working_dir': working_dir,
            'step_id': step_id,
            'is_dry_run': self.policy.dry_run,
            'inputs': inputs,
        }

        try:
            outputs = mock(invocation)
        except Exception as e:
            logger.warning(f"Error running mock for {action_name}: {e}", exc_info=True)
            return StepOutcome(SUCCESS)

        if not isinstance(outputs, Mapping):
            logger.warning(
                f"Mock for {action_name} returned {type(outputs).__name__}, expected a mapping; no outputs recorded"
            )
            return StepOutcome(SUCCESS)

        self._record_outputs(
            job_name, step_id, {str(key): to_expression_string(value) for key, value in outputs.items()}
        )
        logger.info(f"Action {action_name} completed with mock")
        return StepOutcome(SUCCESS)

    def _setup_terraform(
        self,
        step: Dict[str, Any],
        job_name: str,
        working_dir: str,
        matrix: Optional[Dict[str, Any]]
    ) -> None:
        """
        Check the local Terraform against with.terraform_version.

        Raises:
            ToolVersionMismatchError: If the versions differ or terraform cannot run
        """
        logger.info("Setting up Terraform...")
        version = (step.get('with') or {}).get('terraform_version')
        if not version:
            logger.warning("No terraform_version specified in setup-terraform action")
            return

        required = self.resolver.resolve_in_command(
            to_expression_string(version), self.workflow, 'terraform-setup', job_name, self.context, matrix
        )
        logger.info(f"Required Terraform version: {required}")

        if self.policy.dry_run:
            logger.info(f"[PREVIEW] Would check local Terraform version against {required}")
            return

        logger.info(f"Checking Terraform version in: {working_dir}")
        self.terraform_check.check(required, working_dir, self.context.toolchain_version)


def _default_working_dir(definition: Optional[Dict[str, Any]]) -> Optional[str]:
    """defaults.run.working-directory of a job or workflow, if set."""
    if not isinstance(definition, dict):
        return None
    defaults = definition.get('defaults') or {}
    run_defaults = defaults.get('run') if isinstance(defaults, dict) else None
    if not isinstance(run_defaults, dict):
        return None
    return run_defaults.get('working-directory')
