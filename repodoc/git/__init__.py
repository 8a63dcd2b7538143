"""Git history access."""

from .history import HistoryProvider, newest_tag, parse_log

__all__ = ["HistoryProvider", "newest_tag", "parse_log"]
