"""Nissan Leaf on-board charger node."""

from __future__ import annotations

from .canbusnode import CanBusNode, Signal
from .canmessageutils import parse_fields, read_field, read_motorola_field
from .params import Param

_SIGNALS_390 = (
    'SG_ OBC_Status_AC_Voltage : 27|2@1+ (1,0) [0|3] "status" Vector__XXX\n'
    'SG_ OBC_Flag_QC_Relay_On_Announcemen : 38|1@1+ (1,0) [0|1] "status" Vector__XXX\n'
    'SG_ OBC_Flag_QC_IR_Sensor : 47|1@1+ (1,0) [0|1] "status" Vector__XXX\n'
    'SG_ OBC_Maximum_Charge_Power_Out : 40|9@0+ (0.1,0) [0|50] "kW" Vector__XXX\n'
    'SG_ PRUN_390 : 60|2@1+ (1,0) [0|3] "PRUN" Vector__XXX\n'
    'SG_ OBC_Charge_Status : 41|6@1+ (1,0) [0|0] "status" Vector__XXX\n'
    'SG_ CSUM_390 : 56|4@1+ (1,0) [0|16] "CSUM" Vector__XXX\n'
    'SG_ OBC_Charge_Power : 0|9@0+ (0.1,0) [0|50] "kW" Vector__XXX'
)


class LeafOBCharger(CanBusNode):
    """Reports the on-board charger's status and output power in watts."""

    def __init__(self, device, frame_id, params=None, now=0.0):
        super().__init__(device, 0, frame_id, params, now)
        self.output_power_changed = Signal()
        self.max_output_power_changed = Signal()
        self._fields = parse_fields(_SIGNALS_390)
        self._output_power = 0
        self._max_output_power = 0

    @property
    def output_power(self) -> int:
        return self._output_power

    @property
    def max_output_power(self) -> int:
        return self._max_output_power

    def handle_payload(self, data) -> None:
        self.params.set_int(
            Param.OBC_CHARGE_STATUS, read_field(data, self._fields["OBC_Charge_Status"])
        )
        maximum_power = int(read_motorola_field(data, 48, 9, 100))
        power = int(read_motorola_field(data, 8, 9, 100))
        changed = False
        if maximum_power != self._max_output_power:
            self._max_output_power = maximum_power
            changed = True
            self.max_output_power_changed.emit(maximum_power)
        if power != self._output_power:
            self._output_power = power
            changed = True
            self.output_power_changed.emit(power)
        if changed:
            self.changed.emit()