"""
Serial telemetry from the bin's microcontroller.
"""

from .listener import SerialListener, SerialListenerConfig

__all__ = ["SerialListener", "SerialListenerConfig"]
