"""
Workflow executor.

Runs jobs in dependency order. Each pass scans the jobs that have not run
yet in declaration order and runs every job whose `needs` are all done; a
pass that runs nothing ends the run with a warning. Every matrix instance of
a job is confirmed, condition-checked and run on its own.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..actions.registry import MockRegistry
from ..context import RunPolicy, WorkflowContext
from ..exceptions import ToolVersionMismatchError, WorkflowAbortedError
from ..exec.command import CommandRunner, ToolchainProbe
from ..exec.step_executor import StepExecutor, step_name_for
from ..prompts import Confirmation
from ..security.secrets import SecretsManager
from ..state import FAILED, SKIPPED, JobResult, RunResult, StepResult
from ..variables.resolver import ExpressionResolver, to_expression_string
from .conditions import ConditionEvaluator
from .matrix import MatrixExpander, describe_bindings

logger = logging.getLogger(__name__)


def job_display_name(job_name: str, matrix: Optional[Dict[str, Any]] = None) -> str:
    """'build' or 'build ({"os":"linux"})' for a matrix instance."""
    if not matrix:
        return job_name
    return f"{job_name} ({describe_bindings(matrix)})"


def job_needs(job: Dict[str, Any]) -> List[str]:
    """Dependencies of a job; `needs` may be a single name or a list."""
    needs = job.get('needs') if isinstance(job, dict) else None
    if not needs:
        return []
    if isinstance(needs, str):
        return [needs]
    return [str(name) for name in needs]


class WorkflowExecutor:
    """
    Main workflow execution engine.
    Handles job scheduling, matrix instances, job confirmation and job outputs.
    """

    def __init__(
        self,
        workflow: Dict[str, Any],
        repo_root: Union[str, Path],
        prompt,
        policy: Optional[RunPolicy] = None,
        context: Optional[WorkflowContext] = None,
        command_runner: Optional[CommandRunner] = None,
        mock_registry: Optional[MockRegistry] = None,
        secrets_manager: Optional[SecretsManager] = None,
        toolchain_probe: Optional[ToolchainProbe] = None
    ):
        """
        Initialize workflow executor.

        Args:
            workflow: Validated workflow dictionary
            repo_root: Repository root used for working directories
            prompt: User prompt collaborator
            policy: Run policy (default: interactive, not dry run)
            context: Run context (default: a fresh one)
            command_runner: Runs shell commands
            mock_registry: Mocks for `uses:` actions
            secrets_manager: Masks secrets entered during the run
            toolchain_probe: Detects the toolchain manager once per run
        """
        self.workflow = workflow
        self.repo_root = Path(repo_root)
        self.prompt = prompt
        self.policy = policy or RunPolicy()
        self.context = context or WorkflowContext()
        self.secrets_manager = secrets_manager or SecretsManager()
        self.toolchain_probe = toolchain_probe or ToolchainProbe()

        self.resolver = ExpressionResolver(prompt, self.secrets_manager)
        self.condition_evaluator = ConditionEvaluator(self.resolver)
        self.matrix_expander = MatrixExpander(self.resolver)
        self.step_executor = StepExecutor(
            workflow,
            self.context,
            self.policy,
            self.resolver,
            self.condition_evaluator,
            prompt,
            self.repo_root,
            command_runner=command_runner,
            mock_registry=mock_registry,
            secrets_manager=self.secrets_manager,
        )

        self.jobs: Dict[str, Any] = workflow.get('jobs') or {}
        self.completed_jobs: List[str] = []
        self.result = RunResult(workflow_name=str(workflow.get('name') or 'Workflow'))

    def execute(self) -> RunResult:
        """
        Run the workflow.

        Returns:
            RunResult with every job instance and step that ran

        Raises:
            WorkflowAbortedError: If the user quits; self.result keeps what finished
            ToolVersionMismatchError: If a tool setup step fails
        """
        self._detect_toolchain()

        try:
            while len(self.completed_jobs) < len(self.jobs):
                ran_any = False

                for job_name, job in self.jobs.items():
                    if job_name in self.completed_jobs:
                        continue
                    if not self._dependencies_met(job):
                        continue

                    self._run_job(job_name, job if isinstance(job, dict) else {})
                    self.completed_jobs.append(job_name)
                    ran_any = True

                if not ran_any:
                    remaining = [name for name in self.jobs if name not in self.completed_jobs]
                    logger.warning(f"No jobs could run. Remaining jobs: {', '.join(remaining)}")
                    logger.warning("This might indicate a circular dependency or a missing job")
                    break

        except WorkflowAbortedError:
            logger.info("Workflow execution stopped by user")
            self.result.aborted = True
            raise

        return self.result

    def _detect_toolchain(self) -> None:
        if self.context.toolchain_version is not None:
            return

        version = self.toolchain_probe.detect()
        self.context.toolchain_version = version
        if version:
            logger.info(f"mise detected: {version}")
        else:
            logger.info("mise not detected; commands run with the current PATH")

    def _dependencies_met(self, job: Dict[str, Any]) -> bool:
        return all(name in self.completed_jobs for name in job_needs(job))

    def _run_job(self, job_name: str, job: Dict[str, Any]) -> None:
        """Run every matrix instance of a job."""
        matrix_spec = (job.get('strategy') or {}).get('matrix') if isinstance(job.get('strategy'), dict) else None
        instances = self.matrix_expander.expand(matrix_spec, self.workflow, self.context, job_name)

        for number, matrix in enumerate(instances, start=1):
            if matrix:
                logger.info(f"Running matrix job {number} of {len(instances)}")
            self._run_instance(job_name, job, matrix or None)

    def _run_instance(self, job_name: str, job: Dict[str, Any], matrix: Optional[Dict[str, Any]]) -> None:
        display_name = job_display_name(job_name, matrix)
        job_result = JobResult(name=display_name)
        self.result.jobs.append(job_result)

        logger.info(f"Running job: {display_name}")
        if job.get('runs-on'):
            logger.info(f"Runs on: {job['runs-on']}")
        if matrix:
            logger.info(f"Matrix: {json.dumps(matrix)}")

        if self.policy.confirm_jobs and not self.policy.run_all_jobs:
            answer = self.prompt.confirm(f"Do you want to run job '{display_name}'?")
            if answer == Confirmation.QUIT:
                logger.info("Quitting workflow execution")
                job_result.status = SKIPPED
                raise WorkflowAbortedError()
            if answer == Confirmation.ALL:
                self.policy.run_all_jobs = True
                logger.info("[RUN ALL JOBS MODE ACTIVATED] Will auto-run all remaining jobs")
            elif answer != Confirmation.YES:
                logger.info("Skipping job (user chose not to run)")
                job_result.status = SKIPPED
                return

        if job.get('if') is not None:
            if not self.condition_evaluator.evaluate_job_condition(
                job['if'], self.workflow, self.context, matrix
            ):
                logger.info(f"Skipping job (condition not met: {job['if']})")
                job_result.status = SKIPPED
                return

        job_env = self._resolve_job_env(job_name, job, matrix)

        for index, step in enumerate(job.get('steps') or []):
            step_result = StepResult(
                name=step_name_for(step, index),
                status=SKIPPED,
                command=to_expression_string(step['run']) if step.get('run') is not None else None,
            )
            job_result.steps.append(step_result)

            try:
                outcome = self.step_executor.run(step, index, job_name, job, matrix, job_env)
            except ToolVersionMismatchError:
                step_result.status = FAILED
                job_result.status = FAILED
                raise

            step_result.status = outcome.status
            if outcome.status == FAILED:
                job_result.status = FAILED
            if outcome.halt_job:
                logger.info(f"Stopping job '{display_name}'")
                return

        self._resolve_job_outputs(job_name, job, matrix)
        logger.info(f"Job '{display_name}' completed")

    def _resolve_job_env(
        self,
        job_name: str,
        job: Dict[str, Any],
        matrix: Optional[Dict[str, Any]]
    ) -> Dict[str, str]:
        """Resolve job-level env once per instance; matrix bindings first, then other expressions."""
        env = job.get('env')
        if not isinstance(env, dict) or not env:
            return {}

        logger.info("[ENV]")
        resolved: Dict[str, str] = {}
        for key, value in env.items():
            resolved[str(key)] = self.resolver.resolve_in_command(
                to_expression_string(value), self.workflow, 'job-env', job_name, self.context, matrix
            )
            logger.info(f"{key} = \"{self.secrets_manager.mask_text(resolved[str(key)])}\"")
        return resolved

    def _resolve_job_outputs(
        self,
        job_name: str,
        job: Dict[str, Any],
        matrix: Optional[Dict[str, Any]]
    ) -> None:
        outputs = job.get('outputs')
        if not isinstance(outputs, dict) or not outputs:
            return

        logger.info("[OUTPUTS]")
        for output_name, expression in outputs.items():
            value = self.resolver.resolve_job_output(
                to_expression_string(expression), job_name, self.workflow, self.context, matrix
            )
            self.context.set_job_output(job_name, str(output_name), value)
            logger.info(f"{output_name} = \"{self.secrets_manager.mask_text(value)}\"")
