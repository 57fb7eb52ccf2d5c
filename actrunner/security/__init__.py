"""Security module for secrets masking."""

from .secrets import SecretsManager, SecretsMaskingFilter

__all__ = ['SecretsManager', 'SecretsMaskingFilter']
