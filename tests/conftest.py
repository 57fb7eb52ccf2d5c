"""Shared fixtures for actrunner tests."""

from unittest.mock import Mock

import pytest

from actrunner.prompts import Confirmation


@pytest.fixture
def prompt():
    """Prompt stand-in that accepts every default and confirms everything."""
    prompt = Mock()
    prompt.confirm.return_value = Confirmation.YES
    prompt.free_text.side_effect = lambda message, default: default
    prompt.select_from_menu.side_effect = lambda message, options: options[0]
    prompt.secret.return_value = 'hunter2'
    return prompt
