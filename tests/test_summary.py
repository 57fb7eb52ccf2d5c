"""
Tests for run results and the summary tree.
"""

from actrunner.state import JobResult, RunResult, StepResult, render_summary


def make_result():
    return RunResult(
        workflow_name='CI',
        jobs=[
            JobResult('build', 'success', [StepResult('Say hi', 'success', 'echo "hi"')]),
            JobResult('deploy', 'skipped', []),
        ],
    )


class TestRunResult:

    def test_failed(self):
        result = make_result()
        assert not result.failed

        result.jobs.append(JobResult('lint', 'failed'))
        assert result.failed

    def test_steps_flattened(self):
        assert [step.name for step in make_result().steps] == ['Say hi']


class TestRenderSummary:

    def test_tree_and_tallies(self):
        lines = render_summary(make_result())

        assert lines[1] == 'Summary'
        assert lines[3] == 'CI'
        assert lines[4:] == [
            '├─ ✓ build',
            '│ └─ ✓ Say hi',
            '│   └─ echo "hi"',
            '│',
            '└─ ⊝ deploy',
            '',
            'Jobs:  1 passed, 1 skipped (2 total)',
            'Steps: 1 passed (1 total)',
        ]

    def test_long_command_shows_three_lines(self):
        result = RunResult('CI', jobs=[
            JobResult('build', 'failed', [StepResult('Script', 'failed', "a\nb\n\nc\nd\ne")]),
        ])

        lines = render_summary(result)

        assert '  └─ ✗ Script' in lines
        assert '    └─ a' in lines
        assert '       c' in lines
        assert '       ... (2 more lines)' in lines
        assert 'Jobs:  0 passed, 1 failed (1 total)' in lines
