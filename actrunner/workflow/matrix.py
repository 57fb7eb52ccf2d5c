"""
Matrix expansion for `strategy.matrix`.

Each axis may be a literal list, a scalar, or a string expression that
resolves to a JSON array. The expansion is the cartesian product of the axes
in declared order, minus `exclude` matches, plus `include` entries. A matrix
made only of `include` entries is used as-is.
"""

import itertools
import json
import logging
from typing import Any, Dict, List, Optional

from ..context import WorkflowContext
from ..variables.resolver import ExpressionResolver

logger = logging.getLogger(__name__)


class MatrixExpander:
    """Turns a matrix definition into one binding dict per job instance."""

    def __init__(self, resolver: ExpressionResolver):
        self.resolver = resolver

    def expand(
        self,
        matrix_spec: Any,
        workflow: Dict[str, Any],
        context: WorkflowContext,
        job_name: str = ''
    ) -> List[Dict[str, Any]]:
        """
        Expand a matrix definition.

        Args:
            matrix_spec: The job's strategy.matrix (None when absent)
            workflow: Parsed workflow
            context: Run context
            job_name: Owning job, for step output visibility in axis expressions

        Returns:
            Binding sets in emission order; [{}] when there is no matrix,
            [] when a declared matrix has no combinations
        """
        if not matrix_spec:
            return [{}]

        if isinstance(matrix_spec, str):
            matrix_spec = self._resolve_json(matrix_spec, workflow, context, job_name)

        if isinstance(matrix_spec, list):
            combinations = [dict(entry) for entry in matrix_spec if isinstance(entry, dict)]
            self._log_combinations(combinations)
            return combinations

        if not isinstance(matrix_spec, dict):
            logger.warning(f"Ignoring matrix of unsupported type {type(matrix_spec).__name__}")
            return [{}]

        include = self._entries(matrix_spec.get('include'), workflow, context, job_name)
        exclude = self._entries(matrix_spec.get('exclude'), workflow, context, job_name)
        axis_keys = [key for key in matrix_spec if key not in ('include', 'exclude')]

        combinations: List[Dict[str, Any]] = []
        if axis_keys:
            axes = [self._axis_values(matrix_spec[key], workflow, context, job_name) for key in axis_keys]
            for values in itertools.product(*axes):
                combination = dict(zip(axis_keys, values))
                if not any(self._matches(combination, entry) for entry in exclude):
                    combinations.append(combination)

        combinations.extend(include)

        if not combinations:
            logger.warning(f"Matrix for job '{job_name}' has no combinations; no instances will run")
            return []

        self._log_combinations(combinations)
        return combinations

    def _axis_values(
        self,
        value: Any,
        workflow: Dict[str, Any],
        context: WorkflowContext,
        job_name: str
    ) -> List[Any]:
        """Return the list of values for one axis."""
        if isinstance(value, str) and '${{' in value:
            value = self._resolve_json(value, workflow, context, job_name)

        if isinstance(value, list):
            return value
        return [value]

    def _resolve_json(
        self,
        value: str,
        workflow: Dict[str, Any],
        context: WorkflowContext,
        job_name: str
    ) -> Any:
        """Resolve an expression string and parse it as JSON when possible."""
        resolved = self.resolver.resolve_in_command(value, workflow, 'matrix', job_name, context)
        try:
            return json.loads(resolved)
        except (json.JSONDecodeError, ValueError):
            return resolved

    def _entries(
        self,
        value: Any,
        workflow: Dict[str, Any],
        context: WorkflowContext,
        job_name: str
    ) -> List[Dict[str, Any]]:
        if isinstance(value, str):
            value = self._resolve_json(value, workflow, context, job_name)
        if not isinstance(value, list):
            return []
        return [dict(entry) for entry in value if isinstance(entry, dict)]

    def _matches(self, combination: Dict[str, Any], entry: Dict[str, Any]) -> bool:
        return all(key in combination and combination[key] == value for key, value in entry.items())

    def _log_combinations(self, combinations: List[Dict[str, Any]]) -> None:
        logger.info(f"[MATRIX] Matrix combinations ({len(combinations)}):")
        for number, combination in enumerate(combinations, start=1):
            logger.info(f"{number}. {json.dumps(combination)}")


def describe_bindings(matrix: Optional[Dict[str, Any]]) -> str:
    """Compact JSON used in job instance display names."""
    return json.dumps(matrix or {}, separators=(',', ':'))
