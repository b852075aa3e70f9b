"""learntrack - learning progress tracker API."""

__version__ = "0.1.0"
