"""linemon package for line-monitor."""

from .lines import LineBinding, Polarity, Pull, Role
from .monitor import LineMonitor

__all__ = ["LineBinding", "Polarity", "Pull", "Role", "LineMonitor"]
