"""
Telemetry

Raw interaction capture for question sessions.
"""

from .environment import EnvironmentEvents
from .logger import InteractionLogger, now_ms

__all__ = [
    "EnvironmentEvents",
    "InteractionLogger",
    "now_ms",
]
