"""
Visit log storage for redirect analytics.
"""

from .visit_log import VisitLog, group_visits

__all__ = [
    "VisitLog",
    "group_visits",
]
