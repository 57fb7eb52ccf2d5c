"""
Tests for the actrun command line.
"""

from unittest.mock import Mock, patch

import pytest

from actrunner.cli.commands.run import build_policy
from actrunner.cli.main import create_parser, main
from actrunner.exec.command import CommandResult
from actrunner.prompts import Confirmation


WORKFLOW = """
name: CI
on: push
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      - name: Say hi
        run: echo "hi"
"""

TERRAFORM_WORKFLOW = """
name: Infra
on: push
jobs:
  plan:
    runs-on: ubuntu-latest
    steps:
      - uses: hashicorp/setup-terraform@v3
        with:
          terraform_version: 1.5.0
"""


@pytest.fixture
def workflow_file(tmp_path):
    workflows = tmp_path / '.github' / 'workflows'
    workflows.mkdir(parents=True)

    def write(content=WORKFLOW):
        path = workflows / 'ci.yml'
        path.write_text(content)
        return str(path)

    return write


@pytest.fixture(autouse=True)
def no_toolchain():
    with patch('actrunner.workflow.executor.ToolchainProbe') as probe_class:
        probe_class.return_value.detect.return_value = None
        yield probe_class


class TestParser:

    def test_run_options(self):
        args = create_parser().parse_args(['run', 'ci.yml', '--dry-run', '--lines', '5', '--full'])

        assert args.command == 'run'
        assert args.workflow == 'ci.yml'
        assert args.dry_run and args.full
        assert args.lines == 5
        assert not args.yes_all

    def test_build_policy(self):
        args = create_parser().parse_args(['run', 'ci.yml', '--yes-all', '--no-job-prompts'])

        policy = build_policy(args)

        assert policy.run_all_jobs and policy.run_all_commands
        assert not policy.confirm_jobs
        assert policy.truncate_lines == 10

    def test_negative_lines_rejected(self):
        args = create_parser().parse_args(['run', 'ci.yml', '--lines', '-1'])
        with pytest.raises(ValueError):
            build_policy(args)

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1


class TestRunCommand:
    """Test exit codes of `actrun run`."""

    def test_dry_run_succeeds(self, workflow_file, capsys):
        with patch('actrunner.exec.command.CommandRunner.execute') as execute:
            assert main(['run', workflow_file(), '--dry-run', '--yes-all']) == 0

        execute.assert_not_called()
        assert 'Summary' in capsys.readouterr().out

    def test_missing_workflow(self, tmp_path):
        assert main(['run', str(tmp_path / 'missing.yml')]) == 1

    def test_validation_error_exit_code(self, workflow_file):
        assert main(['run', workflow_file("on: push\njobs: {}\n")]) == 2

    def test_failed_job_exits_one(self, workflow_file):
        result = CommandResult(False, '', 'boom', 3)
        with patch('actrunner.exec.command.CommandRunner.execute', return_value=result):
            assert main(['run', workflow_file(), '--yes-all']) == 1

    def test_successful_run(self, workflow_file):
        result = CommandResult(True, 'hi\n', '', 0)
        with patch('actrunner.exec.command.CommandRunner.execute', return_value=result) as execute:
            assert main(['run', workflow_file(), '--yes-all']) == 0

        assert execute.call_args[0][0] == 'echo "hi"'

    def test_quit_exits_one(self, workflow_file, capsys):
        prompt = Mock()
        prompt.confirm.return_value = Confirmation.QUIT
        with patch('actrunner.cli.commands.run.ConsolePrompt', return_value=prompt):
            assert main(['run', workflow_file()]) == 1

        assert 'Summary' in capsys.readouterr().out

    def test_tool_mismatch_exits_one(self, workflow_file):
        result = CommandResult(True, '{"terraform_version": "1.4.0"}', '', 0)
        with patch('actrunner.exec.command.CommandRunner.execute', return_value=result):
            assert main(['run', workflow_file(TERRAFORM_WORKFLOW), '--yes-all']) == 1


class TestValidateCommand:

    def test_valid(self, workflow_file):
        assert main(['validate', workflow_file()]) == 0

    def test_invalid(self, workflow_file):
        assert main(['validate', workflow_file("on: push\n")]) == 2

    def test_missing(self, tmp_path):
        assert main(['validate', str(tmp_path / 'missing.yml')]) == 1
