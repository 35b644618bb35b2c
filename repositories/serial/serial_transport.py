"""Serial Command Transport - Writes arm commands to the servo controller over a serial port."""

from __future__ import annotations

import logging
import threading
from typing import Optional

import serial
from serial import SerialException

from core.exceptions import TransportError
from repositories.interfaces.command_transport import ICommandTransport

logger = logging.getLogger(__name__)


class SerialCommandTransport(ICommandTransport):
    """Transport for the arm controller's serial link (8N1, newline-terminated ASCII)."""

    def __init__(self, port: str = "", baud_rate: int = 9600, timeout: float = 1.0) -> None:
        """Initialize serial transport.

        Args:
            port: Default device path (e.g. "/dev/ttyUSB0", "COM3")
            baud_rate: Line speed, the controller firmware expects 9600
            timeout: Read/write timeout in seconds
        """
        self.port = port
        self.baud_rate = baud_rate
        self.timeout = timeout
        self._serial: Optional[serial.Serial] = None
        self._write_lock = threading.Lock()

    def connect(self, port: Optional[str] = None) -> None:
        target = port or self.port
        if not target:
            raise TransportError("No serial port configured")

        if self.is_connected():
            if target == self.port:
                return
            self.disconnect()

        try:
            self._serial = serial.Serial(
                port=target,
                baudrate=self.baud_rate,
                timeout=self.timeout,
                write_timeout=self.timeout,
            )
            self.port = target
            logger.info(f"Opened serial port {target} @ {self.baud_rate} baud")
        except (SerialException, ValueError) as e:
            self._serial = None
            logger.error(f"Failed to open serial port {target}: {e}")
            raise TransportError(f"Failed to open {target}: {e}") from e

    def send(self, command: str) -> None:
        with self._write_lock:
            if not self.is_connected():
                raise TransportError("Serial port is not open")
            try:
                self._serial.write(f"{command}\n".encode("ascii"))
                self._serial.flush()
            except (SerialException, UnicodeEncodeError) as e:
                logger.error(f"Failed to write '{command}' to {self.port}: {e}")
                raise TransportError(f"Serial write failed: {e}") from e

    def disconnect(self) -> None:
        with self._write_lock:
            if self._serial is None:
                return
            try:
                self._serial.close()
                logger.info(f"Closed serial port {self.port}")
            except SerialException as e:
                logger.warning(f"Error while closing serial port {self.port}: {e}")
            finally:
                self._serial = None

    def is_connected(self) -> bool:
        return self._serial is not None and self._serial.is_open
