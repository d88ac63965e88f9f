"""Trackboard event system."""

from trackboard.events.bus import EventBus
from trackboard.events.types import EventType

__all__ = ["EventBus", "EventType"]
