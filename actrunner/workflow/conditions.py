"""
Condition evaluation for jobs and steps (`if:`).

A condition is parsed with the expression grammar and evaluated against the
run context. Output references must already be recorded: a condition that
mentions an unknown job or step output is false, whatever else it says.
Evaluation problems never propagate; they make the condition false.
"""

import json
import logging
import re
from typing import Any, Dict, Optional

from ..context import WorkflowContext
from ..variables.resolver import EXPRESSION_PATTERN, ExpressionResolver, to_expression_string
from .expressions import (
    ExpressionEvaluationError,
    ExpressionEvaluator,
    ExpressionSyntaxError,
    is_truthy,
    iter_references,
    parse_expression,
)

logger = logging.getLogger(__name__)


NEEDS_OUTPUT_REF = re.compile(r'^needs\.([^.]+)\.outputs\.(.+)$')
NEEDS_RESULT_REF = re.compile(r'^needs\.([^.]+)\.result$')
STEP_OUTPUT_REF = re.compile(r'^steps\.([^.]+)\.outputs\.(.+)$')
QUOTED_STRING = re.compile(r"'(?:[^']|'')*'" r'|"(?:[^"\\]|\\.)*"')


def _string_function(check):
    def function(value=None, search=None):
        if not isinstance(value, str) or not isinstance(search, str):
            return False
        return check(value, search)
    return function


def _from_json(value):
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError) as e:
        raise ExpressionEvaluationError(f"fromJSON: invalid JSON: {e}")


BUILTIN_FUNCTIONS = {
    'always': lambda: True,
    'success': lambda: True,
    'failure': lambda: False,
    'cancelled': lambda: False,
    'startsWith': _string_function(lambda value, prefix: value.startswith(prefix)),
    'endsWith': _string_function(lambda value, suffix: value.endswith(suffix)),
    'contains': _string_function(lambda value, search: search in value),
    'fromJSON': _from_json,
    'toJSON': lambda value: json.dumps(value),
}


class ConditionEvaluator:
    """
    Evaluates job and step conditions.

    Reference lookup:
    - needs.<job>.result: always "success"
    - needs.<job>.outputs.<name>: recorded job outputs (must exist)
    - steps.<id>.outputs.<name>: recorded outputs of the current job (must exist)
    - matrix.<key>: bindings of the current job instance
    - anything else with a dot: resolved through the ExpressionResolver
    """

    def __init__(self, resolver: ExpressionResolver):
        """
        Initialize the condition evaluator.

        Args:
            resolver: Resolver used for github/env/secrets/... references
        """
        self.resolver = resolver

    def evaluate_job_condition(
        self,
        condition: Optional[str],
        workflow: Dict[str, Any],
        context: WorkflowContext,
        matrix: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Evaluate a job-level `if:`.

        Returns:
            True when the job should run
        """
        return self._evaluate(condition, workflow, context, job_name=None, matrix=matrix, kind='Job')

    def evaluate_step_condition(
        self,
        condition: Optional[str],
        workflow: Dict[str, Any],
        job_name: str,
        context: WorkflowContext,
        matrix: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Evaluate a step-level `if:`; step outputs of job_name are visible.

        Returns:
            True when the step should run
        """
        return self._evaluate(condition, workflow, context, job_name=job_name, matrix=matrix, kind='Step')

    def _evaluate(
        self,
        condition: Optional[str],
        workflow: Dict[str, Any],
        context: WorkflowContext,
        job_name: Optional[str],
        matrix: Optional[Dict[str, Any]],
        kind: str
    ) -> bool:
        if condition is None:
            return True
        if isinstance(condition, bool):
            return condition
        text = str(condition).strip()
        if not text:
            return True

        def resolve_reference(path: str) -> Any:
            return self._lookup(path, workflow, context, job_name, matrix)

        evaluator = ExpressionEvaluator(resolve_reference, BUILTIN_FUNCTIONS)

        try:
            spliced = self._splice_quoted_placeholders(text, evaluator, context, job_name)
            # Remaining ${{ }} wrappers only delimit; the grammar sees the inner text
            tree = parse_expression(EXPRESSION_PATTERN.sub(lambda match: match.group(1).strip(), spliced))
        except (ExpressionSyntaxError, ExpressionEvaluationError, TypeError) as e:
            logger.warning(f"Error evaluating {kind.lower()} condition '{text}': {e}")
            return False

        missing = self._find_missing_output(tree, context, job_name)
        if missing:
            logger.warning(f"{kind} condition references unknown {missing}")
            return False

        try:
            result = evaluator.evaluate(tree)
        except (ExpressionEvaluationError, TypeError) as e:
            logger.warning(f"Error evaluating {kind.lower()} condition '{text}': {e}")
            return False

        return is_truthy(result)

    def _splice_quoted_placeholders(
        self,
        text: str,
        evaluator: ExpressionEvaluator,
        context: WorkflowContext,
        job_name: Optional[str]
    ) -> str:
        """
        Substitute ${{ }} placeholders that sit inside string literals.

        `contains('${{ github.ref }}', 'main')` compares against the resolved
        ref, so each such placeholder is evaluated and its value spliced into
        the literal with the literal's own escaping.

        Raises:
            ExpressionEvaluationError: If a placeholder references an unknown output
        """
        def splice(literal_match) -> str:
            literal = literal_match.group(0)
            quote = literal[0]

            def substitute(placeholder_match) -> str:
                tree = parse_expression(placeholder_match.group(1).strip())
                missing = self._find_missing_output(tree, context, job_name)
                if missing:
                    raise ExpressionEvaluationError(f"references unknown {missing}")
                value = to_expression_string(evaluator.evaluate(tree))
                if quote == "'":
                    return value.replace("'", "''")
                return value.replace('\\', '\\\\').replace('"', '\\"')

            return EXPRESSION_PATTERN.sub(substitute, literal)

        return QUOTED_STRING.sub(splice, text)

    def _find_missing_output(self, tree, context: WorkflowContext, job_name: Optional[str]) -> Optional[str]:
        """Return a description of the first unrecorded output reference, if any."""
        for path in iter_references(tree):
            match = NEEDS_OUTPUT_REF.match(path)
            if match:
                needed_job, output_name = match.groups()
                if context.get_job_output(needed_job, output_name) is None:
                    return f"job output: {needed_job}.{output_name}"
                continue

            match = STEP_OUTPUT_REF.match(path)
            if match:
                step_id, output_name = match.groups()
                if job_name is None or context.get_step_output(job_name, step_id, output_name) is None:
                    return f"step output: {step_id}.{output_name}"

        return None

    def _lookup(
        self,
        path: str,
        workflow: Dict[str, Any],
        context: WorkflowContext,
        job_name: Optional[str],
        matrix: Optional[Dict[str, Any]]
    ) -> Any:
        if NEEDS_RESULT_REF.match(path):
            # Jobs that finished are treated as successful
            return 'success'

        match = NEEDS_OUTPUT_REF.match(path)
        if match:
            return context.get_job_output(*match.groups())

        match = STEP_OUTPUT_REF.match(path)
        if match and job_name is not None:
            return context.get_step_output(job_name, *match.groups())

        if path.startswith('matrix.') and matrix and path[len('matrix.'):] in matrix:
            return matrix[path[len('matrix.'):]]

        if '.' not in path:
            raise ExpressionEvaluationError(f"Undefined reference '{path}'")

        return self.resolver.resolve(path, workflow, context)
