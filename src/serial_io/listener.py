"""
Serial telemetry listener.

Reads delimiter-terminated lines from the microcontroller attached to the bin
and logs each one. It runs in its own thread and shares nothing with the
capture loop.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import serial


@dataclass
class SerialListenerConfig:
    """
    Configuration for the serial listener.

    Attributes:
        port: Serial device path.
        baudrate: Line speed.
        delimiter: Line terminator sent by the device.
        encoding: Text encoding of each line; undecodable bytes are replaced.
        read_timeout: Read timeout so the thread can notice stop().
        reconnect_delay: Seconds to wait before reopening a failed port.
        max_line_bytes: Partial lines longer than this are dropped.
    """
    port: str = "/dev/ttyUSB0"
    baudrate: int = 9600
    delimiter: str = "\r\n"
    encoding: str = "utf-8"
    read_timeout: float = 1.0
    reconnect_delay: float = 5.0
    max_line_bytes: int = 4096

    @classmethod
    def from_serial_config(cls, serial_cfg: Dict[str, Any]) -> "SerialListenerConfig":
        return cls(
            port=serial_cfg.get("port", "/dev/ttyUSB0"),
            baudrate=serial_cfg.get("baudrate", 9600),
            delimiter=serial_cfg.get("delimiter", "\r\n"),
            encoding=serial_cfg.get("encoding", "utf-8"),
            read_timeout=serial_cfg.get("read_timeout", 1.0),
            reconnect_delay=serial_cfg.get("reconnect_delay", 5.0),
            max_line_bytes=serial_cfg.get("max_line_bytes", 4096),
        )


class SerialListener:
    """
    Background reader for line-oriented serial telemetry.

    Example:
        listener = SerialListener(SerialListenerConfig(port="/dev/ttyUSB0"))
        listener.start()
        ...
        listener.stop()

    `port_factory` builds the port object; it defaults to opening a
    serial.Serial with the configured settings. Any object with
    read_until() and close() works.
    """

    def __init__(
        self,
        config: SerialListenerConfig,
        port_factory: Optional[Callable[[], Any]] = None,
    ):
        self.config = config
        self._port_factory = port_factory or self._open_serial
        self._delimiter = config.delimiter.encode(config.encoding)
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._callbacks: List[Callable[[str], None]] = []
        self.lines_received = 0
        self.lines_dropped = 0

    def _open_serial(self) -> serial.Serial:
        return serial.Serial(
            self.config.port,
            self.config.baudrate,
            timeout=self.config.read_timeout,
        )

    def add_callback(self, callback: Callable[[str], None]) -> None:
        """Register a function called with every received line."""
        self._callbacks.append(callback)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background reader thread."""
        if self.is_running:
            logging.warning("Serial listener is already running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._worker, name="serial-listener")
        self._thread.daemon = True
        self._thread.start()
        logging.info(f"Serial listener started on {self.config.port} at {self.config.baudrate} baud")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the reader thread and wait for it to exit."""
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
            logging.info("Serial listener stopped")

    def _worker(self) -> None:
        """Open the port, read until stopped, reopen after failures."""
        while not self._stop_event.is_set():
            port = None
            try:
                port = self._port_factory()
                self._read_lines(port)
            except (serial.SerialException, OSError) as e:
                logging.error(f"Serial port {self.config.port} error: {e}")
            except Exception as e:
                logging.error(f"Unexpected serial listener error: {e}")
            finally:
                if port is not None:
                    try:
                        port.close()
                    except Exception as e:
                        logging.warning(f"Error closing serial port: {e}")

            if not self._stop_event.is_set():
                logging.info(f"Reopening serial port in {self.config.reconnect_delay}s")
                self._stop_event.wait(self.config.reconnect_delay)

    def _read_lines(self, port: Any) -> None:
        buffer = b""
        while not self._stop_event.is_set():
            chunk = port.read_until(self._delimiter)
            if not chunk:
                continue
            buffer += chunk
            # read_until returns early on timeout; keep the partial line
            if not buffer.endswith(self._delimiter):
                if len(buffer) > self.config.max_line_bytes:
                    logging.warning(
                        f"Dropping {len(buffer)} bytes without a line terminator; "
                        f"check serial.baudrate"
                    )
                    self.lines_dropped += 1
                    buffer = b""
                continue
            line = buffer[: -len(self._delimiter)].decode(self.config.encoding, errors="replace")
            buffer = b""
            self._handle_line(line)

    def _handle_line(self, line: str) -> None:
        self.lines_received += 1
        logging.info(f"Arduino says: {line}")
        for callback in self._callbacks:
            try:
                callback(line)
            except Exception as e:
                logging.warning(f"Serial callback error: {e}")
