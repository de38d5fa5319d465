"""
Realtime group messaging for the coordination feature.
"""

from .hub import Connection, EventSink, RealtimeHub, ReconnectPolicy

__all__ = ["Connection", "EventSink", "RealtimeHub", "ReconnectPolicy"]
