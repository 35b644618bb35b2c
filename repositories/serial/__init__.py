"""Serial transport for the arm controller."""

from repositories.serial.serial_transport import SerialCommandTransport

__all__ = ["SerialCommandTransport"]
