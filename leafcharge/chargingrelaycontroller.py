"""Relays that switch the charge port between the LIM and the stock charger."""

from __future__ import annotations

import enum
import logging
from pathlib import Path

from .canbusnode import PeriodicTask
from .params import Param, ParamStore

log = logging.getLogger(__name__)

GPIO_ROOT = "/sys/class/gpio"

FLAP_PIN = 2  # high: charge flap open
START1_PIN = 3  # CHAdeMO d1, pin 2 -> 12 V
PROXIMITY_PIN = 4  # CHAdeMO proximity, pin 7 -> GND
START2_PIN = 14  # CHAdeMO d2, pin 10 -> pin 4
MODE_PIN = 15  # PP, CP and CCS plug lock
RELAY_PINS = (FLAP_PIN, START1_PIN, PROXIMITY_PIN, START2_PIN, MODE_PIN)

UPDATE_INTERVAL = 0.25
_OBC_PLUGGED_STATES = frozenset({2, 4, 12})


class ChargingMode(enum.Enum):
    LIM = "LIM"
    LEAF_OB_CHARGER = "Leaf onboard charger"


class SysfsGpio:
    """A GPIO line driven through the sysfs interface."""

    def __init__(self, number, root=GPIO_ROOT):
        self.number = number
        self.root = Path(root)
        self.path = self.root / f"gpio{number}"

    def setup_output(self) -> None:
        """Export the line if needed, make it an output and drive it low."""
        if not self.path.is_dir():
            (self.root / "export").write_text(str(self.number))
        direction = self.path / "direction"
        if direction.read_text().strip() != "out":
            direction.write_text("out")
        self.write(False)

    def read(self) -> bool:
        return (self.path / "value").read_text().strip() == "1"

    def write(self, high) -> None:
        (self.path / "value").write_text("1" if high else "0")


class ChargingRelayController:
    """Derives relay states from the shared parameters every quarter second.

    ``pins`` maps each GPIO number in :data:`RELAY_PINS` to an object with
    ``setup_output()``, ``read()`` and ``write(high)``.
    """

    def __init__(self, params=None, pins=None, now=0.0):
        self.params = params if params is not None else ParamStore()
        if pins is None:
            pins = {number: SysfsGpio(number) for number in RELAY_PINS}
        missing = [number for number in RELAY_PINS if number not in pins]
        if missing:
            raise ValueError(f"missing GPIO pins: {missing}")
        self._pins = {number: pins[number] for number in RELAY_PINS}
        for pin in self._pins.values():
            pin.setup_output()
        self._task = PeriodicTask(UPDATE_INTERVAL, self._update, now)

    def _update(self) -> None:
        self.deduct_charging_mode()
        self.fake_charge_flap()

    def _obc_plug_detected(self) -> bool:
        return self.params.get_int(Param.OBC_CHARGE_STATUS) in _OBC_PLUGGED_STATES

    @property
    def charging_mode(self) -> ChargingMode:
        return ChargingMode.LIM if self._pins[MODE_PIN].read() else ChargingMode.LEAF_OB_CHARGER

    @charging_mode.setter
    def charging_mode(self, mode: ChargingMode) -> None:
        if self.charging_mode == mode:
            return
        log.debug("Set charging mode to %s", mode.value)
        self._pins[MODE_PIN].write(mode == ChargingMode.LIM)

    @property
    def chademo_proximity(self) -> bool:
        return self._pins[PROXIMITY_PIN].read()

    @chademo_proximity.setter
    def chademo_proximity(self, proximity: bool) -> None:
        # charger start 1 has to be released first
        if not proximity and self.charger_start1:
            return
        if proximity == self.chademo_proximity:
            return
        self._pins[PROXIMITY_PIN].write(proximity)

    @property
    def charge_flap_open(self) -> bool:
        return self._pins[FLAP_PIN].read()

    @charge_flap_open.setter
    def charge_flap_open(self, is_open: bool) -> None:
        if self.charge_flap_open == is_open:
            return
        self._pins[FLAP_PIN].write(is_open)

    @property
    def charger_start1(self) -> bool:
        return self._pins[START1_PIN].read()

    @charger_start1.setter
    def charger_start1(self, value: bool) -> None:
        # charger start 2 has to be released first
        if not value and self.charger_start2:
            return
        if self.charger_start1 == value:
            return
        self._pins[START1_PIN].write(value)

    @property
    def charger_start2(self) -> bool:
        return self._pins[START2_PIN].read()

    @charger_start2.setter
    def charger_start2(self, value: bool) -> None:
        if self.charger_start2 == value:
            return
        self._pins[START2_PIN].write(value)

    def deduct_charging_mode(self) -> None:
        params = self.params
        lim_plug_detected = params.get_bool(Param.PLUG_DET)
        obc_plug_detected = self._obc_plug_detected()
        pilot_type = params.get_int(Param.PILOT_TYP)
        pilot_limit = params.get_int(Param.PILOT_LIM)
        cable_limit = params.get_int(Param.CABLE_LIM)
        pilot_is_ac = pilot_type in (1, 2)
        ccs_state = params.get_int(Param.CCS_STATE)

        if lim_plug_detected or pilot_is_ac:
            use_obc = pilot_is_ac
        else:
            use_obc = obc_plug_detected
        self.charging_mode = ChargingMode.LEAF_OB_CHARGER if use_obc else ChargingMode.LIM

        fake_chademo = (
            lim_plug_detected and not pilot_is_ac and not pilot_limit and not cable_limit
        ) or ccs_state >= 1
        self.chademo_proximity = fake_chademo
        self.charger_start1 = fake_chademo and 2 <= ccs_state <= 8
        self.charger_start2 = fake_chademo and 2 <= ccs_state <= 7

    def fake_charge_flap(self) -> None:
        lim_plug_detected = self.params.get_bool(Param.PLUG_DET)
        battery_current = self.params.get_int(Param.IDC)
        obc_plug_detected = self._obc_plug_detected()
        if lim_plug_detected or obc_plug_detected:
            self.charge_flap_open = True  # a plug is inserted, so the flap must be open
        if battery_current == 0:
            self.charge_flap_open = True  # standing still; charging may follow
        if battery_current < 0 and not lim_plug_detected and not obc_plug_detected:
            self.charge_flap_open = False  # driving; lets the LIM run its weld test

    def tick(self, now) -> None:
        """Advance time and update the relays when due."""
        self._task.poll(now)