"""
Tests for strategy.matrix expansion.
"""

import logging

from actrunner.context import WorkflowContext
from actrunner.variables.resolver import ExpressionResolver
from actrunner.workflow.matrix import MatrixExpander, describe_bindings


def make_expander(prompt):
    return MatrixExpander(ExpressionResolver(prompt))


class TestMatrixExpander:
    """Test cartesian products, include/exclude and expression axes."""

    def test_no_matrix_single_instance(self, prompt):
        expander = make_expander(prompt)
        assert expander.expand(None, {}, WorkflowContext()) == [{}]
        assert expander.expand({}, {}, WorkflowContext()) == [{}]

    def test_product_in_declared_order(self, prompt):
        matrix = {'os': ['linux', 'mac'], 'node': [18, 20]}

        combinations = make_expander(prompt).expand(matrix, {}, WorkflowContext())

        assert combinations == [
            {'os': 'linux', 'node': 18},
            {'os': 'linux', 'node': 20},
            {'os': 'mac', 'node': 18},
            {'os': 'mac', 'node': 20},
        ]

    def test_scalar_axis(self, prompt):
        combinations = make_expander(prompt).expand({'os': 'linux'}, {}, WorkflowContext())
        assert combinations == [{'os': 'linux'}]

    def test_include_only(self, prompt):
        matrix = {'include': [{'module': 'network'}, {'module': 'storage'}]}

        combinations = make_expander(prompt).expand(matrix, {}, WorkflowContext())

        assert combinations == [{'module': 'network'}, {'module': 'storage'}]

    def test_list_matrix_used_as_is(self, prompt):
        matrix = [{'module': 'network'}, {'module': 'storage'}]
        assert len(make_expander(prompt).expand(matrix, {}, WorkflowContext())) == 2

    def test_exclude_removes_matches(self, prompt):
        matrix = {
            'os': ['linux', 'mac'],
            'node': [18, 20],
            'exclude': [{'os': 'mac', 'node': 18}],
        }

        combinations = make_expander(prompt).expand(matrix, {}, WorkflowContext())

        assert len(combinations) == 3
        assert {'os': 'mac', 'node': 18} not in combinations

    def test_empty_axis_yields_no_instances(self, prompt, caplog):
        caplog.set_level(logging.WARNING)

        combinations = make_expander(prompt).expand({'os': []}, {}, WorkflowContext(), 'test')

        assert combinations == []
        assert "Matrix for job 'test' has no combinations" in caplog.text

    def test_exclude_everything_yields_no_instances(self, prompt):
        matrix = {'os': ['a'], 'exclude': [{'os': 'a'}]}
        assert make_expander(prompt).expand(matrix, {}, WorkflowContext()) == []

    def test_include_appended_after_product(self, prompt):
        matrix = {
            'os': ['linux', 'mac'],
            'include': [{'os': 'windows', 'experimental': True}],
        }

        combinations = make_expander(prompt).expand(matrix, {}, WorkflowContext())

        assert combinations[-1] == {'os': 'windows', 'experimental': True}
        assert len(combinations) == 3

    def test_expression_axis_from_job_output(self, prompt):
        context = WorkflowContext()
        context.set_job_output('setup', 'files', '["a.tf", "b.tf"]')
        matrix = {'file': '${{ fromJSON(needs.setup.outputs.files) }}'}

        combinations = make_expander(prompt).expand(matrix, {}, context, 'plan')

        assert combinations == [{'file': 'a.tf'}, {'file': 'b.tf'}]

    def test_expression_axis_scalar(self, prompt):
        workflow = {'env': {'REGION': 'eu-west-1'}}

        combinations = make_expander(prompt).expand(
            {'region': '${{ env.REGION }}'}, workflow, WorkflowContext()
        )

        assert combinations == [{'region': 'eu-west-1'}]

    def test_whole_matrix_expression(self, prompt):
        context = WorkflowContext()
        context.set_job_output('setup', 'matrix', '{"include": [{"os": "linux"}, {"os": "mac"}]}')

        combinations = make_expander(prompt).expand(
            '${{ fromJSON(needs.setup.outputs.matrix) }}', {}, context
        )

        assert combinations == [{'os': 'linux'}, {'os': 'mac'}]

    def test_combinations_logged(self, prompt, caplog):
        caplog.set_level(logging.INFO)

        make_expander(prompt).expand({'os': ['linux', 'mac']}, {}, WorkflowContext())

        assert '[MATRIX] Matrix combinations (2):' in caplog.text
        assert '1. {"os": "linux"}' in caplog.text


def test_describe_bindings():
    assert describe_bindings({'os': 'linux', 'node': 18}) == '{"os":"linux","node":18}'
    assert describe_bindings(None) == '{}'
