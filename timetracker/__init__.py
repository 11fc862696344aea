"""Timetracker entry classification and Jira work-log synchronization."""

from timetracker import logging_config  # noqa: F401  registers the TRACE level

__version__ = "1.0.0"
