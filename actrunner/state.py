"""Run results for actrunner.

Records the terminal status of every job instance and step of a run and
renders the end-of-run summary tree.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Literal, Optional

import typer


Status = Literal["success", "failed", "skipped"]

SUCCESS: Status = "success"
FAILED: Status = "failed"
SKIPPED: Status = "skipped"

MAX_COMMAND_LINES = 3


@dataclass
class StepResult:
    """Result of a single step."""
    name: str
    status: Status
    command: Optional[str] = None


@dataclass
class JobResult:
    """Result of one job instance (one matrix combination)."""
    name: str
    status: Status = SUCCESS
    steps: List[StepResult] = field(default_factory=list)


@dataclass
class RunResult:
    """Everything a run finished, in execution order."""
    workflow_name: str
    jobs: List[JobResult] = field(default_factory=list)
    aborted: bool = False

    @property
    def steps(self) -> List[StepResult]:
        return [step for job in self.jobs for step in job.steps]

    @property
    def failed(self) -> bool:
        return any(job.status == FAILED for job in self.jobs)

    def count(self, status: Status, results: Optional[list] = None) -> int:
        results = self.jobs if results is None else results
        return sum(1 for result in results if result.status == status)


_ICONS = {SUCCESS: '✓', FAILED: '✗', SKIPPED: '⊝'}
_COLORS = {SUCCESS: typer.colors.GREEN, FAILED: typer.colors.RED, SKIPPED: typer.colors.BRIGHT_BLACK}


def _plain(text: str, status: Optional[Status] = None, bold: bool = False) -> str:
    return text


def _styled(text: str, status: Optional[Status] = None, bold: bool = False) -> str:
    return typer.style(text, fg=_COLORS.get(status), bold=bold)


def render_summary(result: RunResult, color: bool = False) -> List[str]:
    """
    Render the summary tree and tallies as lines.

    Each job shows its status icon and display name; each step its icon,
    name and up to three non-blank command lines.
    """
    style: Callable[..., str] = _styled if color else _plain
    lines = ['═' * 60, style('Summary', bold=True), '', style(result.workflow_name, bold=True)]

    for job_index, job in enumerate(result.jobs):
        last_job = job_index == len(result.jobs) - 1
        job_prefix = '└─' if last_job else '├─'
        child_prefix = '  ' if last_job else '│ '

        if job_index > 0:
            lines.append('│')
        lines.append(f"{job_prefix} {style(_ICONS[job.status], job.status)} {style(job.name, job.status)}")

        for step_index, step in enumerate(job.steps):
            last_step = step_index == len(job.steps) - 1
            step_prefix = '└─' if last_step else '├─'
            lines.append(
                f"{child_prefix}{step_prefix} {style(_ICONS[step.status], step.status)} "
                f"{style(step.name, step.status)}"
            )

            command_lines = [line.strip() for line in (step.command or '').split('\n') if line.strip()]
            if not command_lines:
                continue

            command_prefix = child_prefix + ('  ' if last_step else '│ ')
            shown = command_lines[:MAX_COMMAND_LINES]
            lines.append(f"{command_prefix}└─ {style(shown[0], SKIPPED)}")
            for line in shown[1:]:
                lines.append(f"{command_prefix}   {style(line, SKIPPED)}")

            omitted = len(command_lines) - len(shown)
            if omitted > 0:
                plural = 's' if omitted > 1 else ''
                lines.append(f"{command_prefix}   {style(f'... ({omitted} more line{plural})', SKIPPED)}")

    lines.append('')
    lines.append(f"Jobs:  {_tally(result, result.jobs, style)}")
    lines.append(f"Steps: {_tally(result, result.steps, style)}")
    return lines


def _tally(result: RunResult, results: list, style: Callable[..., str]) -> str:
    parts = [style(f"{result.count(SUCCESS, results)} passed", SUCCESS)]
    failed = result.count(FAILED, results)
    skipped = result.count(SKIPPED, results)
    if failed:
        parts.append(style(f"{failed} failed", FAILED))
    if skipped:
        parts.append(style(f"{skipped} skipped", SKIPPED))
    return f"{', '.join(parts)} ({len(results)} total)"


def print_summary(result: RunResult) -> None:
    """Print the summary to the terminal."""
    typer.echo()
    for line in render_summary(result, color=True):
        typer.echo(line)
