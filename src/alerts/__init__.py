"""
Alerting: when to speak a caution and what to say.
"""

from .scheduler import AlertPolicy, AlertScheduler, AlertState, SchedulerState, build_caution, is_alert_worthy
from .describe import describe_scene, summarize_status

__all__ = [
    "AlertPolicy",
    "AlertScheduler",
    "AlertState",
    "SchedulerState",
    "build_caution",
    "is_alert_worthy",
    "describe_scene",
    "summarize_status",
]
