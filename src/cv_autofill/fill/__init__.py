"""Per-field write/verify state machine."""

from cv_autofill.fill.executor import FillExecutor, create_fill_executor

__all__ = ["FillExecutor", "create_fill_executor"]
