"""
Tests for workflow loading and structural validation.
"""

import pytest

from actrunner.exceptions import WorkflowValidationError
from actrunner.loader import WorkflowLoader, find_repo_root


VALID_WORKFLOW = """
name: CI
on: push
env:
  REGION: eu-west-1
jobs:
  build:
    runs-on: ubuntu-latest
    outputs:
      version: ${{ steps.meta.outputs.version }}
    steps:
      - uses: actions/checkout@v4
      - id: meta
        run: echo "version=1.0.0" >> "$GITHUB_OUTPUT"
  deploy:
    needs: build
    runs-on: ubuntu-latest
    if: ${{ needs.build.outputs.version != '' }}
    steps:
      - run: echo deploying
"""


def write(tmp_path, content, name='ci.yml'):
    path = tmp_path / name
    path.write_text(content)
    return path


class TestWorkflowLoader:
    """Test loading and validation."""

    def test_load_valid_workflow(self, tmp_path):
        workflow = WorkflowLoader().load(write(tmp_path, VALID_WORKFLOW))

        assert workflow['name'] == 'CI'
        assert list(workflow['jobs']) == ['build', 'deploy']
        assert workflow['jobs']['deploy']['needs'] == 'build'

    def test_on_key_preserved(self, tmp_path):
        workflow = WorkflowLoader().load(write(tmp_path, VALID_WORKFLOW))

        assert 'on' in workflow
        assert True not in workflow
        assert workflow['on'] == 'push'

    def test_booleans_still_parsed(self, tmp_path):
        content = VALID_WORKFLOW + "    continue-on-error: true\n"
        workflow = WorkflowLoader().load(write(tmp_path, content))

        assert workflow['jobs']['deploy']['continue-on-error'] is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            WorkflowLoader().load(tmp_path / 'missing.yml')

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(WorkflowValidationError) as exc_info:
            WorkflowLoader().load(write(tmp_path, "jobs: [unclosed"))

        assert exc_info.value.exit_code == 2
        assert 'Failed to parse workflow YAML' in str(exc_info.value)

    def test_not_a_mapping(self, tmp_path):
        with pytest.raises(WorkflowValidationError):
            WorkflowLoader().load(write(tmp_path, "- just\n- a list\n"))

    def test_errors_collected_together(self, tmp_path):
        content = """
on: push
jobs:
  build:
    steps:
      - run: make
        uses: acme/tool@v1
  deploy:
    needs: missing
    runs-on: ubuntu-latest
    steps:
      - run: make deploy
"""
        with pytest.raises(WorkflowValidationError) as exc_info:
            WorkflowLoader().load(write(tmp_path, content))

        messages = [error.message for error in exc_info.value.errors]
        assert "'runs-on' is required" in messages
        assert "A step cannot have both 'run' and 'uses'" in messages
        assert "'needs' references unknown job 'missing'" in messages

    def test_validate_returns_result(self):
        result = WorkflowLoader().validate({'on': 'push', 'jobs': {}})

        assert not result.valid
        assert result.errors[0].path == 'jobs'

    def test_validate_accepts_matrix_expression(self):
        workflow = {
            'on': 'push',
            'jobs': {'plan': {
                'runs-on': 'ubuntu-latest',
                'strategy': {'matrix': '${{ fromJSON(needs.setup.outputs.matrix) }}'},
                'steps': [{'run': 'terraform plan'}],
            }},
        }
        assert WorkflowLoader().validate(workflow).valid

    def test_unknown_fields_rejected(self):
        workflow = {
            'on': 'push',
            'jobs': {'build': {'runs-on': 'x', 'steps': [{'run': 'ls', 'bogus': 1}]}},
        }

        result = WorkflowLoader().validate(workflow)

        assert not result.valid
        assert result.errors[0].path == 'jobs.build.steps[0].bogus'


class TestFindRepoRoot:

    def test_github_workflows_layout(self, tmp_path):
        workflows = tmp_path / '.github' / 'workflows'
        workflows.mkdir(parents=True)
        path = write(workflows, VALID_WORKFLOW)

        assert find_repo_root(path) == tmp_path.resolve()

    def test_other_layout(self, tmp_path):
        path = write(tmp_path, VALID_WORKFLOW)
        assert find_repo_root(path) == tmp_path.resolve()
