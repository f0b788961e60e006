"""Shares the battery's charge power between the stock charger and TC chargers."""

from __future__ import annotations

import logging

from .canbusnode import PeriodicTask
from .leafhvbattery import LeafHVBattery
from .leafobcharger import LeafOBCharger
from .params import Param
from .tccharger import StatusFlag, TcCharger

log = logging.getLogger(__name__)

CONTROL_INTERVAL = 0.1
STOCK_CHARGER_SHARE = 1.05


class TcChargerController:
    """Sets TC charger limits once a battery, a stock charger and TC chargers exist."""

    def __init__(self, detector, params=None, now=0.0):
        self.detector = detector
        self.params = params if params is not None else detector.params
        self.battery: LeafHVBattery | None = None
        self.stock_charger: LeafOBCharger | None = None
        self.tc_chargers: list[TcCharger] = []
        self._now = now
        self._timer: PeriodicTask | None = None
        detector.node_created.connect(self.node_created)

    @property
    def running(self) -> bool:
        return self._timer is not None

    def _complete(self) -> bool:
        return bool(self.tc_chargers) and self.stock_charger is not None and self.battery is not None

    def node_created(self, node) -> None:
        node.closed.connect(self.node_removed)
        if isinstance(node, LeafHVBattery):
            self.battery = node
        elif isinstance(node, LeafOBCharger):
            self.stock_charger = node
        elif isinstance(node, TcCharger):
            self.tc_chargers.append(node)
        if self._complete():
            self._timer = PeriodicTask(CONTROL_INTERVAL, self.control_chargers, self._now)

    def node_removed(self, node) -> None:
        if node is self.battery:
            self.battery = None
        elif node is self.stock_charger:
            self.stock_charger = None
        self.tc_chargers = [charger for charger in self.tc_chargers if charger is not node]
        if not self._complete():
            self.shutdown()

    def shutdown(self) -> None:
        """Stop controlling and set every TC charger to zero output."""
        self._timer = None
        for charger in self.tc_chargers:
            charger.set_max_output_voltage(0)
            charger.set_max_output_current(0)

    def control_chargers(self) -> None:
        if not self._complete():
            self.shutdown()
            return
        battery = self.battery
        max_power = min(battery.max_power_for_charger, battery.charge_power_limit)
        onboard_power = self.stock_charger.output_power
        total_power = 0 if onboard_power > max_power else max_power - onboard_power
        charger_power = min(
            int(onboard_power * STOCK_CHARGER_SHARE), total_power // len(self.tc_chargers)
        )
        # No voltage reading yet means no current can be derived from the power.
        current = charger_power / battery.voltage if battery.voltage > 0 else 0
        for charger in self.tc_chargers:
            if charger.status != StatusFlag.NORMAL:
                log.debug("Charger state not normal: %r %r", charger, charger.status)
            charger.set_max_output_voltage(self.params.get_int(Param.VOLTSPNT))
            charger.set_max_output_current(current)

    def tick(self, now) -> None:
        """Advance time and run the control loop when it is due."""
        self._now = now
        if self._timer is not None:
            self._timer.poll(now)