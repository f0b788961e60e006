"""Nissan Leaf high-voltage battery management system node."""

from __future__ import annotations

import logging

from .canbusnode import CanBusNode, Signal
from .canmessageutils import read_motorola_field
from .params import Mode, Param

log = logging.getLogger(__name__)

STATUS_FRAME_ID = 0x1DB
LIMITS_FRAME_ID = 0x1DC
DEFAULT_CHADEMO_CURRENT_LIMIT = 125


class LeafHVBattery(CanBusNode):
    """Tracks the battery's voltage, current, charge and power limits."""

    def __init__(self, device, frame_id, params=None, now=0.0):
        super().__init__(device, 0, frame_id, params, now)
        log.debug("Adding Leaf HV battery")
        self.discharge_power_limit_changed = Signal()
        self.charge_power_limit_changed = Signal()
        self.max_power_for_charger_changed = Signal()
        self.voltage_changed = Signal()
        self.current_changed = Signal()
        self.state_of_charge_changed = Signal()
        self._discharge_power_limit = 0
        self._charge_power_limit = 0
        self._max_power_for_charger = 0
        self._voltage = 0.0
        self._current = 0.0
        self._state_of_charge = 0.0
        self.params.set_int(Param.BATT_CAP, 40080)
        self.params.set_int(Param.VOLTSPNT, 435)

    @property
    def discharge_power_limit(self) -> int:
        return self._discharge_power_limit

    @property
    def charge_power_limit(self) -> int:
        return self._charge_power_limit

    @property
    def max_power_for_charger(self) -> int:
        return self._max_power_for_charger

    @property
    def voltage(self) -> float:
        return self._voltage

    @property
    def current(self) -> float:
        return self._current

    @property
    def state_of_charge(self) -> float:
        return self._state_of_charge

    def handle_frame(self, frame_id, data) -> None:
        if frame_id == STATUS_FRAME_ID:
            changed = self._handle_status(data)
        elif frame_id == LIMITS_FRAME_ID:
            changed = self._handle_limits(data)
        else:
            changed = False
        if changed:
            self.changed.emit()

    def _handle_status(self, data) -> bool:
        changed = False
        params = self.params

        state_of_charge = float(data[4])
        if state_of_charge != self._state_of_charge:
            self._state_of_charge = state_of_charge
            params.set_int(Param.SOC, state_of_charge)
            params.set_int(Param.SOCFC, state_of_charge)
            changed = True
            self.state_of_charge_changed.emit(state_of_charge)

        voltage = read_motorola_field(data, 30, 10, 0.5)
        if voltage != self._voltage:
            self._voltage = voltage
            changed = True
            self.voltage_changed.emit(voltage)

        current = read_motorola_field(data, 13, 11, 0.5, signed=True)
        if current != self._current:
            self._current = current
            params.set_int(Param.IDC, current)
            changed = True
            self.current_changed.emit(current)

        plug_detected = params.get_bool(Param.PLUG_DET)
        running = params.get_int(Param.CCS_STATE) == 0 and current != 0 and not plug_detected
        params.set_int(Param.OPMODE, Mode.RUN if running else Mode.OFF)
        params.set_int(Param.UDC, voltage if plug_detected or current != 0 else 0)
        return changed

    def _handle_limits(self, data) -> bool:
        changed = False

        discharge = int(read_motorola_field(data, 14, 10, 250))
        if discharge != self._discharge_power_limit:
            self._discharge_power_limit = discharge
            changed = True
            self.discharge_power_limit_changed.emit(discharge)

        charge = int(read_motorola_field(data, 20, 10, 250))
        if charge != self._charge_power_limit:
            self._charge_power_limit = charge
            changed = True
            self.charge_power_limit_changed.emit(charge)

        for_charger = int(read_motorola_field(data, 26, 10, 250))
        if for_charger != self._max_power_for_charger:
            self._max_power_for_charger = for_charger
            changed = True
            self.max_power_for_charger_changed.emit(for_charger)

        requested = self.params.get_int(Param.CHADEMO_IREQ)
        chademo_limit = requested if requested > 0 else DEFAULT_CHADEMO_CURRENT_LIMIT
        power = min(self._max_power_for_charger, self._charge_power_limit)
        if self._voltage == 0:
            # Without a voltage reading the current cannot be derived from power.
            limit = chademo_limit
        else:
            limit = min(power / self._voltage, chademo_limit)
        self.params.set_int(Param.CCS_ILIM, limit)
        return changed

    def receiving_frame_ids(self) -> list[int]:
        return [LIMITS_FRAME_ID, STATUS_FRAME_ID, 0x55B]