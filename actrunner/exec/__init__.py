"""
Execution module.
Handles shell command execution, toolchain detection and step output capture.
"""

from .command import CommandResult, CommandRunner, ToolchainProbe, DEFAULT_CI_ENV
from .output_capture import OutputCapture, TruncatedOutput, OUTPUT_ENV_VAR

__all__ = [
    "CommandResult",
    "CommandRunner",
    "ToolchainProbe",
    "DEFAULT_CI_ENV",
    "OutputCapture",
    "TruncatedOutput",
    "OUTPUT_ENV_VAR",
]
