"""
Interactive prompts used while simulating a workflow run.

Every prompt blocks until the user answers. ConsolePrompt is the terminal
implementation; tests substitute a Mock with the same methods.
"""

from enum import Enum
from typing import List

import typer


class Confirmation(str, Enum):
    """Answers accepted at job and command confirmations."""
    YES = "yes"
    NO = "no"
    ALL = "all"
    QUIT = "quit"
    SKIP = "skip"

    @classmethod
    def parse(cls, answer: str) -> "Confirmation":
        """
        Map a typed answer to a Confirmation.

        Accepts the full word or its first letter, case-insensitively.
        Anything unrecognised counts as NO.
        """
        normalized = (answer or "").strip().lower()
        for member in cls:
            if normalized in (member.value, member.value[0]):
                return member
        return cls.NO


class ConsolePrompt:
    """Terminal prompts built on typer."""

    def confirm(self, question: str) -> Confirmation:
        """Ask a y/n/a/q/s question; pressing Enter answers no."""
        answer = typer.prompt(f"{question} (y/n/a/q/s)", default="n")
        return Confirmation.parse(answer)

    def select_from_menu(self, prompt: str, options: List[str]) -> str:
        """
        Show a numbered menu and return the chosen option.

        Accepts either the option number or the option text; re-asks until
        one of the options is chosen.
        """
        typer.echo(prompt)
        for number, option in enumerate(options, start=1):
            typer.echo(f"  {number}. {option}")

        while True:
            answer = typer.prompt("Select", default="1").strip()
            if answer.isdigit() and 1 <= int(answer) <= len(options):
                return options[int(answer) - 1]
            if answer in options:
                return answer
            typer.echo(f"Please choose 1-{len(options)}")

    def free_text(self, prompt: str, default: str) -> str:
        return typer.prompt(prompt, default=default).strip()

    def secret(self, prompt: str) -> str:
        """Ask for a value without echoing it."""
        return typer.prompt(prompt, default="", hide_input=True, show_default=False)
