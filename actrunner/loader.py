"""Workflow loader and structural validation for GitHub Actions YAML."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from actrunner.exceptions import ValidationError, WorkflowValidationError

logger = logging.getLogger(__name__)


class PreservingLoader(yaml.SafeLoader):
    """YAML loader that keeps the `on` key a string instead of converting it to a bool."""
    pass


# Drop the bool resolvers for words starting with o/O ('on', 'off'); true/false still resolve
PreservingLoader.yaml_implicit_resolvers = dict(PreservingLoader.yaml_implicit_resolvers)
for _first in ('o', 'O'):
    if _first in PreservingLoader.yaml_implicit_resolvers:
        PreservingLoader.yaml_implicit_resolvers[_first] = [
            (tag, regexp) for tag, regexp in PreservingLoader.yaml_implicit_resolvers[_first]
            if tag != 'tag:yaml.org,2002:bool'
        ]


@dataclass
class ValidationResult:
    """Outcome of structural validation."""
    valid: bool
    errors: List[ValidationError] = field(default_factory=list)


def find_repo_root(workflow_path: Union[str, Path]) -> Path:
    """
    Repository root for a workflow file.

    The directory above `.github/` when the file lives in
    `.github/workflows/`, otherwise the file's own directory.
    """
    workflow_dir = Path(workflow_path).resolve().parent
    if workflow_dir.parent.name == '.github':
        return workflow_dir.parent.parent
    return workflow_dir


class WorkflowLoader:
    """Loads workflow YAML and checks the structure the executor relies on."""

    KNOWN_TOP_LEVEL = {
        'name', 'run-name', 'on', 'env', 'defaults', 'jobs', 'permissions', 'concurrency'
    }
    KNOWN_JOB_FIELDS = {
        'name', 'runs-on', 'needs', 'if', 'env', 'defaults', 'strategy', 'steps', 'outputs',
        'permissions', 'environment', 'concurrency', 'timeout-minutes', 'continue-on-error',
        'container', 'services', 'uses', 'with', 'secrets'
    }
    KNOWN_STEP_FIELDS = {
        'id', 'name', 'if', 'run', 'uses', 'with', 'env', 'working-directory', 'shell',
        'continue-on-error', 'timeout-minutes'
    }

    def __init__(self):
        self.errors: List[ValidationError] = []

    def load(self, workflow_path: Union[str, Path]) -> Dict[str, Any]:
        """
        Load and validate a workflow file.

        Raises:
            FileNotFoundError: If the file does not exist
            WorkflowValidationError: If the YAML is invalid or the structure is wrong
        """
        workflow_path = Path(workflow_path)
        if not workflow_path.exists():
            raise FileNotFoundError(f"Workflow file '{workflow_path}' not found")

        self.errors = []
        try:
            with open(workflow_path, 'r') as f:
                workflow = yaml.load(f, Loader=PreservingLoader)
        except yaml.YAMLError as e:
            self._add_error(f"Failed to parse workflow YAML: {e}")
            self._raise_validation_errors()

        result = self.validate(workflow)
        if not result.valid:
            raise WorkflowValidationError(result.errors)

        return workflow

    def validate(self, workflow: Any) -> ValidationResult:
        """
        Check workflow structure without raising.

        Returns:
            ValidationResult listing every problem found
        """
        self.errors = []

        if workflow is None or not isinstance(workflow, dict):
            self._add_error("Workflow must be a YAML object/dictionary")
            return ValidationResult(valid=False, errors=list(self.errors))

        for key in workflow:
            if key not in self.KNOWN_TOP_LEVEL:
                self._add_error(f"Unknown field '{key}'", str(key))

        if 'on' not in workflow:
            self._add_error("'on' field is required", 'on')

        if 'env' in workflow:
            self._validate_env(workflow['env'], 'env')
        if 'defaults' in workflow:
            self._validate_defaults(workflow['defaults'], 'defaults')

        jobs = workflow.get('jobs')
        if not jobs:
            self._add_error("'jobs' field is required and must not be empty", 'jobs')
        elif not isinstance(jobs, dict):
            self._add_error("'jobs' must be a mapping of job id to job", 'jobs')
        else:
            for job_name, job in jobs.items():
                self._validate_job(str(job_name), job, jobs)

        return ValidationResult(valid=not self.errors, errors=list(self.errors))

    def _validate_job(self, job_name: str, job: Any, jobs: Dict[str, Any]):
        path = f"jobs.{job_name}"
        if not isinstance(job, dict):
            self._add_error("Job must be a mapping", path)
            return

        for key in job:
            if key not in self.KNOWN_JOB_FIELDS:
                self._add_error(f"Unknown field '{key}'", f"{path}.{key}")

        if 'uses' not in job and 'runs-on' not in job:
            self._add_error("'runs-on' is required", f"{path}.runs-on")

        needs = job.get('needs')
        if needs is not None:
            names = [needs] if isinstance(needs, str) else needs
            if not isinstance(names, list) or not all(isinstance(name, str) for name in names):
                self._add_error("'needs' must be a job id or a list of job ids", f"{path}.needs")
            else:
                for name in names:
                    if name not in jobs:
                        self._add_error(f"'needs' references unknown job '{name}'", f"{path}.needs")

        if 'env' in job:
            self._validate_env(job['env'], f"{path}.env")
        if 'defaults' in job:
            self._validate_defaults(job['defaults'], f"{path}.defaults")

        outputs = job.get('outputs')
        if outputs is not None and not isinstance(outputs, dict):
            self._add_error("'outputs' must be a mapping", f"{path}.outputs")

        strategy = job.get('strategy')
        if strategy is not None:
            if not isinstance(strategy, dict):
                self._add_error("'strategy' must be a mapping", f"{path}.strategy")
            elif 'matrix' in strategy and not isinstance(strategy['matrix'], (dict, list, str)):
                self._add_error("'matrix' must be a mapping, a list or an expression", f"{path}.strategy.matrix")

        steps = job.get('steps')
        if 'uses' in job:
            return
        if not steps:
            self._add_error("'steps' is required and must not be empty", f"{path}.steps")
        elif not isinstance(steps, list):
            self._add_error("'steps' must be a list", f"{path}.steps")
        else:
            for index, step in enumerate(steps):
                self._validate_step(step, f"{path}.steps[{index}]")

    def _validate_step(self, step: Any, path: str):
        if not isinstance(step, dict):
            self._add_error("Step must be a mapping", path)
            return

        for key in step:
            if key not in self.KNOWN_STEP_FIELDS:
                self._add_error(f"Unknown field '{key}'", f"{path}.{key}")

        if 'run' in step and 'uses' in step:
            self._add_error("A step cannot have both 'run' and 'uses'", path)

        if 'uses' in step and not isinstance(step['uses'], str):
            self._add_error("'uses' must be a string", f"{path}.uses")

        if 'with' in step and not isinstance(step['with'], dict):
            self._add_error("'with' must be a mapping", f"{path}.with")

        if 'env' in step:
            self._validate_env(step['env'], f"{path}.env")

    def _validate_env(self, env: Any, path: str):
        if not isinstance(env, dict):
            self._add_error("'env' must be a mapping", path)
            return
        for key, value in env.items():
            if isinstance(value, (dict, list)):
                self._add_error(f"Value of '{key}' must be a scalar", f"{path}.{key}")

    def _validate_defaults(self, defaults: Any, path: str):
        if not isinstance(defaults, dict):
            self._add_error("'defaults' must be a mapping", path)
            return
        run = defaults.get('run')
        if run is not None and not isinstance(run, dict):
            self._add_error("'run' must be a mapping", f"{path}.run")

    def _add_error(self, message: str, path: str = "", exit_code: int = 2):
        """Add validation error."""
        self.errors.append(ValidationError(message, path, exit_code))

    def _raise_validation_errors(self):
        """Raise WorkflowValidationError with accumulated errors."""
        raise WorkflowValidationError(self.errors)


def describe_workflow(workflow: Dict[str, Any]) -> None:
    """Log the workflow header: name, triggers and jobs."""
    if not workflow.get('name'):
        logger.warning("Workflow has no name")
    else:
        logger.info(f"Workflow name: {workflow['name']}")

    triggers: Optional[Any] = workflow.get('on')
    if not triggers:
        logger.warning("Workflow has no triggers defined")
    elif isinstance(triggers, (dict, list)):
        logger.info(f"Triggers: {', '.join(str(name) for name in triggers)}")
    else:
        logger.info(f"Triggers: {triggers}")

    jobs = workflow.get('jobs') or {}
    if not jobs:
        logger.warning("Workflow has no jobs defined")
    else:
        logger.info(f"Jobs: {', '.join(str(name) for name in jobs)}")
