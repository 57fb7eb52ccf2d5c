"""Run-scoped state shared by every component of a workflow run.

WorkflowContext holds what the run has learned (answers, outputs); RunPolicy
holds how the run should behave (dry run, sticky run-all modes).
"""

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class WorkflowContext:
    """Mutable state for one workflow run.

    Attributes:
        resolved_variables: expression text -> resolved value. First value wins.
        step_outputs: job name -> step id -> output name -> value
        job_outputs: job name -> output name -> value
        toolchain_version: Detected toolchain manager version (None if absent)
    """
    resolved_variables: Dict[str, str] = field(default_factory=dict)
    step_outputs: Dict[str, Dict[str, Dict[str, str]]] = field(default_factory=dict)
    job_outputs: Dict[str, Dict[str, str]] = field(default_factory=dict)
    toolchain_version: Optional[str] = None

    def get_step_output(self, job_name: str, step_id: str, name: str) -> Optional[str]:
        """Return a recorded step output, or None when it was never recorded."""
        return self.step_outputs.get(job_name, {}).get(step_id, {}).get(name)

    def set_step_outputs(self, job_name: str, step_id: str, outputs: Dict[str, str]) -> None:
        """Record outputs for a step, merging with anything already recorded."""
        job_steps = self.step_outputs.setdefault(job_name, {})
        job_steps.setdefault(step_id, {}).update(outputs)

    def get_job_output(self, job_name: str, name: str) -> Optional[str]:
        """Return a recorded job output, or None when it was never recorded."""
        return self.job_outputs.get(job_name, {}).get(name)

    def set_job_output(self, job_name: str, name: str, value: str) -> None:
        self.job_outputs.setdefault(job_name, {})[name] = value


@dataclass
class RunPolicy:
    """
    Behaviour switches for a run.

    run_all_jobs and run_all_commands are sticky: once an 'all' answer sets
    them they stay set for the rest of the run.
    """
    dry_run: bool = False
    run_all_jobs: bool = False
    run_all_commands: bool = False
    confirm_jobs: bool = True
    show_full_output: bool = False
    truncate_lines: int = 10
