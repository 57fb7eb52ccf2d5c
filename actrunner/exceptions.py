"""actrunner exceptions."""

from typing import List
from dataclasses import dataclass


@dataclass
class ValidationError:
    """Single validation error."""
    message: str
    path: str = ""
    exit_code: int = 2


class WorkflowValidationError(Exception):
    """Raised when workflow validation fails.

    This exception is raised by the loader when validation errors occur,
    allowing the CLI to catch it and map to appropriate exit codes.
    """

    def __init__(self, errors: List[ValidationError]):
        self.errors = errors
        self.exit_code = 2

        messages = []
        for error in errors:
            if error.path:
                messages.append(f"Validation error: {error.path}: {error.message}")
            else:
                messages.append(f"Validation error: {error.message}")

        super().__init__("\n".join(messages))


class WorkflowAbortedError(Exception):
    """Raised when the user answers 'quit' at any confirmation prompt.

    Unwinds step -> job -> scheduler. It is not a step failure: jobs and
    steps that already finished keep their results.
    """

    def __init__(self, message: str = "Workflow execution stopped by user"):
        super().__init__(message)


class ToolVersionMismatchError(Exception):
    """Raised when a tool setup step cannot be satisfied locally. Fatal for the run."""

    def __init__(self, tool: str, required: str, local: str = "", message: str = ""):
        self.tool = tool
        self.required = required
        self.local = local
        if not message:
            message = f"{tool} version mismatch! Required: {required}, Local: {local}"
        super().__init__(message)
