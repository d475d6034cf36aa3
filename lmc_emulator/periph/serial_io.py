"""
LMC Emulator — Serial Port I/O Handler

Runs a program against a serial terminal (or anything pyserial can open:
a device path, ``socket://host:port``, ``loop://`` for testing).

Wire format:
  numbers     — ASCII decimal terminated by LF, both directions ("42\\n")
  characters  — one raw byte each, both directions; a character request
                takes the first buffered byte and discards the rest

Reads are non-blocking (timeout=0): when no complete value has arrived
yet the handler returns None and the engine reports AWAITING_INPUT, so a
driver loop can keep polling without stalling.
"""

from __future__ import annotations
import logging
from typing import Optional

import serial

from ..config import SERIAL_BAUD, SERIAL_TIMEOUT, SERIAL_WRITE_TIMEOUT, CELL_MAX, CHAR_MASK
from .console import IOHandler

log = logging.getLogger(__name__)


class SerialIO(IOHandler):
    """
    Serial-line handler for LMC program I/O.

    Usage:
        io = SerialIO('/dev/ttyUSB0')
        io.open()
        emu = LMCEmulator(memory, io)
        ...
        io.close()
    """

    def __init__(self, port: Optional[str] = None, baud: int = SERIAL_BAUD,
                 ser: Optional[serial.Serial] = None):
        self.port = port
        self.baud = baud
        self.ser = ser
        self._rx = bytearray()

    # -------------------------------------------------------------------------
    # Port Management
    # -------------------------------------------------------------------------

    def open(self) -> bool:
        """Open the port. Returns False (and logs) if it cannot be opened."""
        if self.ser is not None and self.ser.is_open:
            return True
        try:
            self.ser = serial.serial_for_url(
                self.port,
                baudrate=self.baud,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=SERIAL_TIMEOUT,
                write_timeout=SERIAL_WRITE_TIMEOUT,
            )
            log.info("Opened %s @ %d baud (8N1)", self.port, self.baud)
            return True
        except serial.SerialException as e:
            log.error("Failed to open %s: %s", self.port, e)
            return False

    def close(self):
        """Close serial port."""
        if self.ser and self.ser.is_open:
            self.ser.close()
            log.info("Closed %s", self.port)
        self.ser = None

    @property
    def is_connected(self) -> bool:
        return self.ser is not None and self.ser.is_open

    def __enter__(self):
        if not self.open():
            raise serial.SerialException(f"Could not open {self.port}")
        return self

    def __exit__(self, *exc):
        self.close()

    # -------------------------------------------------------------------------
    # RX buffering
    # -------------------------------------------------------------------------

    def _poll(self):
        """Move whatever the port has into the local buffer."""
        if not self.ser:
            raise serial.SerialException("Port not open")
        avail = self.ser.in_waiting
        if avail:
            self._rx.extend(self.ser.read(avail))

    def request_number(self) -> Optional[int]:
        self._poll()
        while True:
            end = self._rx.find(b'\n')
            if end < 0:
                return None
            line = bytes(self._rx[:end]).strip()
            del self._rx[:end + 1]
            if not line:
                continue
            try:
                value = int(line.decode('ascii'), 10)
            except (UnicodeDecodeError, ValueError):
                log.warning("Discarding non-numeric input line %r", line)
                continue
            if not 0 <= value <= CELL_MAX:
                log.warning("Input out of range 0-%d: %d", CELL_MAX, value)
                continue
            return value

    def request_character(self) -> Optional[int]:
        self._poll()
        if not self._rx:
            return None
        value = self._rx[0]
        # Only the first byte counts; anything buffered behind it is dropped
        if len(self._rx) > 1:
            log.debug("Discarding %d extra input byte(s)", len(self._rx) - 1)
        self._rx.clear()
        return value

    # -------------------------------------------------------------------------
    # TX
    # -------------------------------------------------------------------------

    def _write(self, data: bytes):
        if not self.ser:
            raise serial.SerialException("Port not open")
        self.ser.write(data)
        self.ser.flush()

    def emit_number(self, value: int):
        self._write(f"{value}\n".encode('ascii'))

    def emit_character(self, value: int):
        self._write(bytes([value & CHAR_MASK]))
