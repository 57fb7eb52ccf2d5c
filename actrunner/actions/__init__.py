"""Handlers for `uses:` steps."""

from .registry import MockRegistry, mocks_dir_for, strip_version
from .terraform import TerraformVersionCheck, is_setup_terraform, normalize_version

__all__ = [
    'MockRegistry',
    'mocks_dir_for',
    'strip_version',
    'TerraformVersionCheck',
    'is_setup_terraform',
    'normalize_version',
]
