"""Run GitHub Actions workflows locally, one confirmed step at a time."""

__version__ = "0.3.0"
