"""
Shell command execution and toolchain detection.

Commands run through `bash -c` so multi-line `run:` scripts behave as they
would on a runner. When the mise toolchain manager is present the shell
activates it first, so pinned tool versions are on PATH.
"""

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)


# Variables every step sees, as on a hosted runner
DEFAULT_CI_ENV: Dict[str, str] = {
    'CI': 'true',
    'GITHUB_ACTIONS': 'true',
}


@dataclass
class CommandResult:
    """Result of a shell command."""
    success: bool
    output: str
    error: str
    exit_code: int


class CommandRunner:
    """Runs shell commands in a working directory with extra environment."""

    def __init__(self, shell: str = 'bash'):
        self.shell = shell

    def build_shell_command(
        self,
        command: str,
        cwd: Union[str, Path],
        toolchain_version: Optional[str] = None
    ) -> str:
        """
        Compose the script handed to the shell.

        Args:
            command: Command text from the step
            cwd: Directory to change into first
            toolchain_version: When set, mise is activated before the command
        """
        prefix = f"cd {shlex.quote(str(cwd))}"
        if toolchain_version:
            return f'{prefix} && eval "$(mise activate bash)" && {command}'
        return f"{prefix} && {command}"

    def execute(
        self,
        command: str,
        cwd: Union[str, Path],
        env: Optional[Dict[str, str]] = None,
        toolchain_version: Optional[str] = None
    ) -> CommandResult:
        """
        Execute a command and capture its output.

        Args:
            command: Command text
            cwd: Working directory
            env: Variables overlaid on the current process environment
            toolchain_version: Detected toolchain manager version, if any

        Returns:
            CommandResult; spawn failures are reported as exit code 1
        """
        shell_command = self.build_shell_command(command, cwd, toolchain_version)

        process_env = os.environ.copy()
        if env:
            process_env.update({key: str(value) for key, value in env.items()})

        logger.debug(f"Executing: {shell_command}")
        try:
            result = subprocess.run(
                [self.shell, '-c', shell_command],
                env=process_env,
                capture_output=True,
                text=True,
                errors='replace',
            )
        except OSError as e:
            return CommandResult(success=False, output='', error=str(e), exit_code=1)

        return CommandResult(
            success=result.returncode == 0,
            output=result.stdout,
            error=result.stderr,
            exit_code=result.returncode,
        )


class ToolchainProbe:
    """Detects the mise toolchain manager."""

    def __init__(self, command: str = 'mise --version'):
        self.command = command

    def detect(self) -> Optional[str]:
        """
        Return the toolchain manager version, or None if it is not installed.
        """
        try:
            result = subprocess.run(
                ['bash', '-c', self.command],
                capture_output=True,
                text=True,
                check=True,
            )
        except (OSError, subprocess.CalledProcessError):
            return None

        version = result.stdout.strip()
        return version or None
