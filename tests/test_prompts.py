"""
Tests for confirmation parsing and the terminal prompt.
"""

from unittest.mock import patch

import pytest

from actrunner.prompts import Confirmation, ConsolePrompt


class TestConfirmationParse:

    @pytest.mark.parametrize('answer,expected', [
        ('y', Confirmation.YES),
        ('YES', Confirmation.YES),
        ('n', Confirmation.NO),
        (' a ', Confirmation.ALL),
        ('all', Confirmation.ALL),
        ('q', Confirmation.QUIT),
        ('Quit', Confirmation.QUIT),
        ('s', Confirmation.SKIP),
        ('skip', Confirmation.SKIP),
        ('', Confirmation.NO),
        ('maybe', Confirmation.NO),
        (None, Confirmation.NO),
    ])
    def test_parse(self, answer, expected):
        assert Confirmation.parse(answer) is expected


class TestConsolePrompt:

    def test_confirm(self):
        with patch('actrunner.prompts.typer.prompt', return_value='a') as typer_prompt:
            assert ConsolePrompt().confirm('Run job?') is Confirmation.ALL

        assert typer_prompt.call_args[0][0] == 'Run job? (y/n/a/q/s)'

    def test_confirm_shows_no_as_default(self):
        with patch('actrunner.prompts.typer.prompt', side_effect=lambda text, default: default) as typer_prompt:
            assert ConsolePrompt().confirm('Run job?') is Confirmation.NO

        assert typer_prompt.call_args[1] == {'default': 'n'}

    def test_select_by_number_after_invalid_answer(self):
        with patch('actrunner.prompts.typer.echo'), \
                patch('actrunner.prompts.typer.prompt', side_effect=['9', '2']):
            assert ConsolePrompt().select_from_menu('Pick', ['branch', 'tag']) == 'tag'

    def test_select_by_text(self):
        with patch('actrunner.prompts.typer.echo'), \
                patch('actrunner.prompts.typer.prompt', return_value='branch'):
            assert ConsolePrompt().select_from_menu('Pick', ['branch', 'tag']) == 'branch'

    def test_free_text_strips(self):
        with patch('actrunner.prompts.typer.prompt', return_value='  main '):
            assert ConsolePrompt().free_text('Branch', 'main') == 'main'

    def test_secret_hides_input(self):
        with patch('actrunner.prompts.typer.prompt', return_value='pw') as typer_prompt:
            assert ConsolePrompt().secret('Token') == 'pw'

        assert typer_prompt.call_args[1]['hide_input'] is True
