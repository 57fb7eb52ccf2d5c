"""
Expression resolution for `${{ ... }}` placeholders.

Values come from the workflow itself (env), from what the run has recorded
(step and job outputs, matrix bindings) or, failing that, from the user.
Every answer is cached in the WorkflowContext by expression text, so the
user is asked at most once per distinct expression per run.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from ..context import WorkflowContext
from ..security.secrets import SecretsManager

logger = logging.getLogger(__name__)


# Well-known GitHub context values offered as a menu instead of free text
GITHUB_CONTEXT_OPTIONS: Dict[str, List[str]] = {
    'github.ref_type': ['branch', 'tag'],
    'github.event_name': [
        'push', 'pull_request', 'workflow_dispatch', 'schedule', 'release', 'create', 'delete'
    ],
}

# prefix -> (prompt message, suggested default)
GITHUB_CONTEXT_DEFAULTS = [
    ('github.ref_name', 'Enter branch/tag name', 'main'),
    ('github.sha', 'Enter commit SHA', 'abc123def456'),
    ('github.workspace', 'Enter workspace path', '/home/runner/work/repo/repo'),
]

# Non-greedy up to the first '}'; an unterminated opener swallows text up to the next '}'
EXPRESSION_PATTERN = re.compile(r'\$\{\{\s*([^}]+)\s*\}\}')
STEP_OUTPUT_PATTERN = re.compile(r'^steps\.([^.]+)\.outputs\.(.+)$')
JOB_STEP_OUTPUT_PATTERN = re.compile(r'\$?\{\{\s*steps\.([^.]+)\.outputs\.(.+?)\s*\}\}')
NEEDS_OUTPUT_PATTERN = re.compile(r'needs\.([^.]+)\.outputs\.(.+)')
FROM_JSON_PATTERN = re.compile(r'fromJSON\(([^)]+)\)')


def extract_expressions(text: str) -> List[str]:
    """
    Find every `${{ ... }}` expression in text.

    Returns:
        Trimmed inner expressions, left to right, duplicates preserved
    """
    if not text:
        return []
    return [match.group(1).strip() for match in EXPRESSION_PATTERN.finditer(text)]


def placeholder_for(expression: str) -> str:
    """The canonical placeholder text an extracted expression is substituted back into."""
    return '${{ ' + expression + ' }}'


def to_expression_string(value: Any) -> str:
    """
    Render a value the way it appears once substituted into a command.

    Booleans render lower-case, numbers as-is, lists and dicts as JSON.
    """
    if isinstance(value, bool):
        return 'true' if value else 'false'
    elif isinstance(value, (int, float)):
        return str(value)
    elif isinstance(value, str):
        return value
    elif value is None:
        return ''
    else:
        return json.dumps(value, separators=(',', ':'))


class ExpressionResolver:
    """
    Resolves GitHub Actions expressions against a WorkflowContext.

    The prompt collaborator must provide select_from_menu(prompt, options),
    free_text(prompt, default) and secret(prompt).
    """

    def __init__(self, prompt, secrets_manager: Optional[SecretsManager] = None):
        """
        Initialize the resolver.

        Args:
            prompt: User prompt collaborator
            secrets_manager: Receives every secret value entered, for masking
        """
        self.prompt = prompt
        self.secrets_manager = secrets_manager or SecretsManager()

    def resolve(self, expression: str, workflow: Dict[str, Any], context: WorkflowContext) -> str:
        """
        Resolve a single expression (without the `${{ }}` wrapper).

        A cached answer always wins, whichever code path asks.

        Args:
            expression: Expression text, e.g. 'github.sha' or 'env.REGION'
            workflow: Parsed workflow
            context: Run context holding the cache and recorded outputs

        Returns:
            Resolved string value
        """
        if expression in context.resolved_variables:
            return context.resolved_variables[expression]

        value = self._lookup(expression, workflow, context)
        context.resolved_variables[expression] = value
        return value

    def _lookup(self, expression: str, workflow: Dict[str, Any], context: WorkflowContext) -> str:
        """Produce a value for an uncached expression, asking the user when needed."""
        if expression in GITHUB_CONTEXT_OPTIONS:
            value = self.prompt.select_from_menu(
                f"Select value for '{expression}':",
                GITHUB_CONTEXT_OPTIONS[expression]
            )
            logger.info(f"Resolved {expression} = \"{value}\"")
            return value

        if expression.startswith('github.event.inputs.'):
            input_name = expression[len('github.event.inputs.'):]
            value = self.prompt.free_text(f"Enter value for input '{input_name}'", 'my-value')
            logger.info(f"Resolved {expression} = \"{value}\"")
            return value

        if expression.startswith('secrets.'):
            secret_name = expression[len('secrets.'):]
            value = self.prompt.secret(f"Enter value for secret '{secret_name}'")
            self.secrets_manager.register(value)
            logger.info(f"Resolved {expression} = \"***\"")
            return value

        if expression.startswith('env.'):
            env_name = expression[len('env.'):]
            workflow_env = (workflow or {}).get('env') or {}
            if env_name in workflow_env:
                value = to_expression_string(workflow_env[env_name])
            else:
                value = self.prompt.free_text(
                    f"Enter value for environment variable '{env_name}'", 'value'
                )
            logger.info(f"Resolved {expression} = \"{value}\"")
            return value

        for prefix, message, default in GITHUB_CONTEXT_DEFAULTS:
            if expression.startswith(prefix):
                value = self.prompt.free_text(message, default)
                logger.info(f"Resolved {expression} = \"{value}\"")
                return value

        if 'fromJSON(' in expression and ')' in expression:
            match = FROM_JSON_PATTERN.search(expression)
            if match:
                return self._resolve_from_json(match.group(1).strip(), workflow, context)

        if 'needs.' in expression:
            match = NEEDS_OUTPUT_PATTERN.search(expression)
            if match:
                job_name, output_name = match.groups()
                recorded = context.get_job_output(job_name, output_name)
                if recorded is not None:
                    logger.info(f"Using job output: {job_name}.{output_name} = \"{recorded}\"")
                    return recorded
                value = self.prompt.free_text(
                    f"Enter value for job output '{expression}'", 'output-value'
                )
                logger.info(f"Resolved {expression} = \"{value}\"")
                return value

        value = self.prompt.free_text(f"Enter value for '{expression}'", 'value')
        logger.info(f"Resolved {expression} = \"{value}\"")
        return value

    def _resolve_from_json(self, inner: str, workflow: Dict[str, Any], context: WorkflowContext) -> str:
        """Resolve the argument of fromJSON() and normalise it if it is valid JSON."""
        resolved_inner = self.resolve(inner, workflow, context)
        try:
            parsed = json.loads(resolved_inner)
        except (json.JSONDecodeError, ValueError):
            logger.info(f"Resolved fromJSON({inner}) = \"{resolved_inner}\"")
            return resolved_inner

        value = json.dumps(parsed, separators=(',', ':'))
        logger.info(f"Resolved fromJSON({inner}) = {value}")
        return value

    def resolve_step_output(self, expression: str, job_name: str, context: WorkflowContext) -> str:
        """
        Resolve `steps.<id>.outputs.<name>` against the current job's step outputs.

        Unknown outputs are asked for every time; the answer is not cached.
        """
        match = STEP_OUTPUT_PATTERN.match(expression)
        if match:
            step_id, output_name = match.groups()
            recorded = context.get_step_output(job_name, step_id, output_name)
            if recorded is not None:
                return recorded

        return self.prompt.free_text(f"Enter value for step output '{expression}'", 'output-value')

    def resolve_in_command(
        self,
        command: str,
        workflow: Dict[str, Any],
        step_id: str,
        job_name: str,
        context: WorkflowContext,
        matrix: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Substitute every expression in a command (or any other text).

        Matrix references use the instance bindings directly; step output
        references use the current job's outputs; everything else goes
        through resolve(). Each value replaces the first remaining
        occurrence of its canonical placeholder, so a placeholder written
        with unusual spacing such as `${{  github.sha }}` is left as-is.

        Args:
            command: Text containing `${{ }}` placeholders
            workflow: Parsed workflow
            step_id: Id of the step being resolved (for log messages)
            job_name: Job whose step outputs are visible
            context: Run context
            matrix: Matrix bindings of the current job instance

        Returns:
            Text with placeholders substituted
        """
        expressions = extract_expressions(command)
        if not expressions:
            return command

        resolved = command
        for expression in expressions:
            matrix_key = expression[len('matrix.'):] if expression.startswith('matrix.') else None

            if matrix_key is not None and matrix and matrix_key in matrix:
                value = to_expression_string(matrix[matrix_key])
                logger.info(f"Resolved {expression} = \"{value}\"")
            elif expression.startswith('steps.') and '.outputs.' in expression:
                value = self.resolve_step_output(expression, job_name, context)
                match = STEP_OUTPUT_PATTERN.match(expression)
                if match:
                    logger.info(f"Using step output: {match.group(1)}.{match.group(2)} = \"{value}\"")
            else:
                value = self.resolve(expression, workflow, context)

            logger.debug(f"[{step_id}] substituting {expression}")
            resolved = resolved.replace(placeholder_for(expression), value, 1)

        return resolved

    def resolve_job_output(
        self,
        expression: str,
        job_name: str,
        workflow: Dict[str, Any],
        context: WorkflowContext,
        matrix: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Resolve one value of a job's `outputs` mapping.

        A step output reference is looked up in the job's recorded step
        outputs first; other text is resolved like a command.
        """
        expression = to_expression_string(expression)
        if 'steps.' in expression and '.outputs.' in expression:
            match = JOB_STEP_OUTPUT_PATTERN.fullmatch(expression.strip())
            if match:
                step_id, output_name = match.groups()
                recorded = context.get_step_output(job_name, step_id, output_name)
                if recorded is not None:
                    logger.info(f"Using step output for job output: {step_id}.{output_name} = \"{recorded}\"")
                    return recorded
                return self.prompt.free_text(
                    f"Enter value for step output '{expression}'", 'output-value'
                )

        return self.resolve_in_command(expression, workflow, 'job-outputs', job_name, context, matrix)
