"""TC (elcon-style) charger node driven over extended CAN ids."""

from __future__ import annotations

import enum
import math

from .canbusnode import CanBusNode, CanFrame, Signal

_SENDING_IDS = {
    0x18FF50E7: 0x1806E7F4,  # protocol 998
    0x18FF50E5: 0x1806E5F4,  # protocol 1430
}

SEND_INTERVAL = 1.0


class StatusFlag(enum.IntFlag):
    """Status bits reported by the charger."""

    NORMAL = 0x00
    HARDWARE_FAILURE = 0x01
    OVER_TEMPERATURE_PROTECTION = 0x02
    INCORRECT_INPUT_VOLTAGE = 0x04
    BATTERY_DISCONNECTED_OR_REVERSED = 0x08
    COMMUNICATION_TIMEOUT = 0x10


def sending_frame_id_for(frame_id_receiving) -> int:
    """The command frame id matching a charger's status frame id, or 0."""
    return _SENDING_IDS.get(frame_id_receiving, 0x0)


def _to_tenths(value) -> int:
    raw = value * 10
    if not math.isfinite(raw) or not 0 <= raw < 0x10000:
        raise ValueError(f"{value!r} is out of range for the charger")
    return int(raw)


class TcCharger(CanBusNode):
    """Sends voltage and current limits and reads back the charger's output."""

    def __init__(self, device, frame_id, params=None, now=0.0):
        super().__init__(device, sending_frame_id_for(frame_id), frame_id, params, now)
        self.output_voltage_changed = Signal()
        self.output_current_changed = Signal()
        self.max_output_voltage_changed = Signal()
        self.max_output_current_changed = Signal()
        self.status_changed = Signal()
        self._output_voltage = 0
        self._output_current = 0
        self._max_output_voltage = 0
        self._max_output_current = 0
        self._status = StatusFlag.COMMUNICATION_TIMEOUT
        self.add_periodic(SEND_INTERVAL, self.prepare_and_send_frame)

    @property
    def output_voltage(self) -> float:
        return self._output_voltage / 10.0

    @property
    def output_current(self) -> float:
        return self._output_current / 10.0

    @property
    def max_output_voltage(self) -> float:
        return self._max_output_voltage / 10.0

    @property
    def max_output_current(self) -> float:
        return self._max_output_current / 10.0

    @property
    def status(self) -> StatusFlag:
        return self._status

    def set_max_output_voltage(self, voltage) -> None:
        """Set the voltage limit; send it at once if it changed."""
        raw = _to_tenths(voltage)
        if raw == self._max_output_voltage:
            return
        self._max_output_voltage = raw
        self.max_output_voltage_changed.emit(self.max_output_voltage)
        self.prepare_and_send_frame()

    def set_max_output_current(self, current) -> None:
        """Set the current limit; send it at once if it changed."""
        raw = _to_tenths(current)
        if raw == self._max_output_current:
            return
        self._max_output_current = raw
        self.max_output_current_changed.emit(self.max_output_current)
        self.prepare_and_send_frame()

    def prepare_and_send_frame(self) -> CanFrame:
        data = bytearray(8)
        data[0:2] = self._max_output_voltage.to_bytes(2, "big")
        data[2:4] = self._max_output_current.to_bytes(2, "big")
        return self.send_frame(data)

    def handle_payload(self, data) -> None:
        voltage = (data[0] * 255 + data[1]) & 0xFFFF
        current = (data[2] * 255 + data[3]) & 0xFFFF
        status = StatusFlag(data[4])
        if voltage != self._output_voltage:
            self._output_voltage = voltage
            self.output_voltage_changed.emit(self.output_voltage)
        if current != self._output_current:
            self._output_current = current
            self.output_current_changed.emit(self.output_current)
        if status != self._status:
            self._status = status
            self.status_changed.emit(status)