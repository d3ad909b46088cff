"""Analysis scheduling."""

from .scheduler import DEFAULT_BUDGET, Scheduler

__all__ = ["DEFAULT_BUDGET", "Scheduler"]
