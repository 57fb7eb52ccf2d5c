"""
Secret value tracking and masking.

Secret values are never read from the workflow: the user types them when a
`${{ secrets.NAME }}` expression is first resolved. Every such value is
remembered here so command output and log records can be masked with '***'.
"""

import re
from typing import Any, Dict, Set


class SecretsManager:
    """Remembers secret values entered during a run and masks them in text."""

    def __init__(self):
        """Initialize secrets manager."""
        self._masked_values: Set[str] = set()

    def register(self, value: str) -> None:
        """
        Track a secret value for masking.

        Empty strings are not tracked (masking them would mangle every line).
        """
        if value:
            self._masked_values.add(value)

    def mask_text(self, text: str) -> str:
        """
        Mask known secret values in text.

        Args:
            text: Text potentially containing secrets

        Returns:
            Text with secrets replaced by '***'
        """
        if not text or not self._masked_values:
            return text

        masked = text
        # Longest first so a secret containing another secret is masked whole
        for secret_value in sorted(self._masked_values, key=len, reverse=True):
            if secret_value in masked:
                masked = re.sub(re.escape(secret_value), '***', masked)

        return masked

    def mask_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Recursively mask secrets in a dictionary.

        Args:
            data: Dictionary potentially containing secrets

        Returns:
            Dictionary with secrets masked
        """
        if not data or not self._masked_values:
            return data

        masked = {}
        for key, value in data.items():
            if isinstance(value, str):
                masked[key] = self.mask_text(value)
            elif isinstance(value, dict):
                masked[key] = self.mask_dict(value)
            elif isinstance(value, list):
                masked[key] = [
                    self.mask_text(item) if isinstance(item, str) else item
                    for item in value
                ]
            else:
                masked[key] = value

        return masked

    def clear_masked_values(self):
        """Clear the set of values to mask (useful for testing)."""
        self._masked_values.clear()


class SecretsMaskingFilter:
    """
    Logging filter for masking secrets in log records.

    Attach to logging handlers so secret values never reach the terminal.
    """

    def __init__(self, secrets_manager: SecretsManager):
        self.secrets_manager = secrets_manager

    def filter(self, record):
        """
        Mask the record message and its string args.

        Returns:
            True (always pass the record through)
        """
        if hasattr(record, 'msg'):
            record.msg = self.secrets_manager.mask_text(str(record.msg))

        if hasattr(record, 'args') and record.args:
            if isinstance(record.args, dict):
                record.args = self.secrets_manager.mask_dict(record.args)
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    self.secrets_manager.mask_text(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        return True
