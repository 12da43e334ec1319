"""qualitygate - pre-release quality gate for developer workflows."""

__version__ = "0.3.0"
