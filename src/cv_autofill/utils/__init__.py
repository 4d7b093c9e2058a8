"""Logging helpers."""

from cv_autofill.utils.logging import configure_logging, get_logger, log_run_summary

__all__ = ["configure_logging", "get_logger", "log_run_summary"]
