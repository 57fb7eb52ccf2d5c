"""
Local handling of `hashicorp/setup-terraform`.

Nothing is installed. The step only checks that the Terraform on PATH (as
activated by mise, when present) matches the version the workflow pins.
"""

import json
import logging
import re
from pathlib import Path
from typing import Optional, Union

from ..exceptions import ToolVersionMismatchError
from ..exec.command import DEFAULT_CI_ENV, CommandRunner

logger = logging.getLogger(__name__)


ACTION_NAME = 'hashicorp/setup-terraform'
VERSION_COMMAND = 'terraform version -json'


def normalize_version(version: str) -> str:
    """Drop everything except digits and dots: '1.5.0+ent' -> '1.5.0'."""
    return re.sub(r'[^0-9.]', '', version or '')


def is_setup_terraform(action: str) -> bool:
    return action.split('@', 1)[0] == ACTION_NAME


class TerraformVersionCheck:
    """Compares a required Terraform version with the local one."""

    def __init__(self, command_runner: Optional[CommandRunner] = None):
        self.command_runner = command_runner or CommandRunner()

    def local_version(
        self,
        working_dir: Union[str, Path],
        toolchain_version: Optional[str] = None
    ) -> str:
        """
        Ask the local terraform binary for its version.

        Raises:
            ToolVersionMismatchError: If the command fails or prints no version
        """
        result = self.command_runner.execute(
            VERSION_COMMAND, working_dir, dict(DEFAULT_CI_ENV), toolchain_version
        )
        if not result.success:
            logger.error(f"Failed to get local Terraform version: {result.error.strip()}")
            logger.error("Please ensure Terraform is installed and available in PATH")
            raise ToolVersionMismatchError(
                'terraform', '',
                message=f"Failed to get local Terraform version: {result.error.strip()}"
            )

        try:
            version = json.loads(result.output)['terraform_version']
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise ToolVersionMismatchError(
                'terraform', '',
                message=f"Could not read Terraform version output: {e}"
            )

        logger.info(f"Local Terraform version: {version}")
        return version

    def check(
        self,
        required_version: str,
        working_dir: Union[str, Path],
        toolchain_version: Optional[str] = None
    ) -> str:
        """
        Verify the local version against required_version.

        Returns:
            The local version string

        Raises:
            ToolVersionMismatchError: On any mismatch after normalization
        """
        local = self.local_version(working_dir, toolchain_version)

        if normalize_version(local) != normalize_version(required_version):
            logger.error("Terraform version mismatch!")
            logger.error(f"Required: {required_version}")
            logger.error(f"Local: {local}")
            logger.error("Please install the correct Terraform version or update the workflow")
            raise ToolVersionMismatchError('terraform', required_version, local)

        logger.info(f"Terraform version matches ({local})")
        return local
