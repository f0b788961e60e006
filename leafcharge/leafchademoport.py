"""Emulated CHAdeMO charger answering the Leaf's quick-charge port."""

from __future__ import annotations

import logging

from .canbusnode import CanBusNode, CanFrame
from .canmessageutils import parse_fields, read_field
from .params import Param

log = logging.getLogger(__name__)

VEHICLE_LIMITS_ID = 0x100
VEHICLE_TIMES_ID = 0x101
VEHICLE_STATUS_ID = 0x102
CHARGER_LIMITS_ID = 0x108
CHARGER_STATUS_ID = 0x109

SEND_INTERVAL = 0.1
TIMEOUT_INTERVAL = 1.0

AVAILABLE_OUTPUT_VOLTAGE = 500
AVAILABLE_OUTPUT_CURRENT = 125
CONTROL_PROTOCOL_NUMBER = 2
REMAINING_CHARGE_MINUTES = 60

_SIGNALS = {
    VEHICLE_LIMITS_ID: (
        'SG_ MaximumBatteryVoltage : 39|16@0+ (1,0) [0|600] "V" Vector__XXX\n'
        'SG_ ConstantOfChargingRateIndication : 48|8@1+ (1,0) [0|100] "%" Vector__XXX\n'
        'SG_ MinimumChargeCurrent : 0|8@1+ (1,0) [0|255] "A" Vector__XXX'
    ),
    VEHICLE_TIMES_ID: (
        'SG_ MaxChargingTime10sBit : 8|8@1+ (10,0) [0|2540] "seconds" Vector__XXX\n'
        'SG_ MaxChargingTime1minBit : 16|8@1+ (1,0) [0|255] "minutes" Vector__XXX\n'
        'SG_ EstimatedChargingTime : 24|8@1+ (1,0) [0|254] "minutes" Vector__XXX\n'
        'SG_ RatedBatteryCapacity : 47|16@0+ (0.11,0) [0|100] "kWh" Vector__XXX'
    ),
    VEHICLE_STATUS_ID: (
        'SG_ ControlProtocolNumberEV : 0|8@1+ (1,0) [0|255] "-" Vector__XXX\n'
        'SG_ TargetBatteryVoltage : 15|16@0+ (1,0) [0|600] "V" Vector__XXX\n'
        'SG_ ChargingCurrentRequest : 24|8@1+ (1,0) [0|255] "A" Vector__XXX\n'
        'SG_ FaultBatteryVoltageDeviation : 36|1@1+ (1,0) [0|1] "status" Vector__XXX\n'
        'SG_ FaultHighBatteryTemperature : 35|1@1+ (1,0) [0|1] "status" Vector__XXX\n'
        'SG_ FaultBatteryCurrentDeviation : 34|1@1+ (1,0) [0|1] "status" Vector__XXX\n'
        'SG_ FaultBatteryUndervoltage : 33|1@1+ (1,0) [0|1] "status" Vector__XXX\n'
        'SG_ FaultBatteryOvervoltage : 32|1@1+ (1,0) [0|1] "status" Vector__XXX\n'
        'SG_ StatusNormalStopRequest : 44|1@1+ (1,0) [0|1] "status" Vector__XXX\n'
        'SG_ StatusVehicle : 43|1@1+ (1,0) [0|1] "status" Vector__XXX\n'
        'SG_ StatusChargingSystem : 42|1@1+ (1,0) [0|1] "status" Vector__XXX\n'
        'SG_ StatusVehicleShifterPosition : 41|1@1+ (1,0) [0|1] "status" Vector__XXX\n'
        'SG_ StatusVehicleCharging : 40|1@1+ (1,0) [0|1] "status" Vector__XXX\n'
        'SG_ ChargingRate : 48|8@1+ (1,0) [0|100] "%" Vector__XXX'
    ),
    CHARGER_LIMITS_ID: (
        "SG_ EVContactorWeldingDetection : 0|8@1+ (1,0) [0|1]  Vector__XXX\n"
        'SG_ AvailableOutputVoltage : 15|16@0+ (1,0) [0|600] "V" Vector__XXX\n'
        'SG_ AvailableOutputCurrent : 24|8@1+ (1,0) [0|255] "A" Vector__XXX\n'
        'SG_ ThresholdVoltage : 39|16@0+ (1,0) [0|600] "V" Vector__XXX'
    ),
    CHARGER_STATUS_ID: (
        'SG_ ControlProtocolNumberQC : 0|8@1+ (1,0) [0|255] "-" Vector__XXX\n'
        'SG_ OutputVoltage : 15|16@0+ (1,0) [0|600] "V" Vector__XXX\n'
        'SG_ OutputCurrent : 24|8@1+ (1,0) [0|255] "A" Vector__XXX\n'
        'SG_ StatusChargerStopControl : 45|1@1+ (1,0) [0|1] "status" Vector__XXX\n'
        'SG_ FaultChargingSystemMalfunction : 44|1@1+ (1,0) [0|1] "status" Vector__XXX\n'
        'SG_ FaultBatteryIncompatibility : 43|1@1+ (1,0) [0|1] "status" Vector__XXX\n'
        'SG_ StatusVehicleConnectorLock : 42|1@1+ (1,0) [0|1] "status" Vector__XXX\n'
        'SG_ FaultStationMalfunction : 41|1@1+ (1,0) [0|1] "status" Vector__XXX\n'
        'SG_ StatusStation : 40|1@1+ (1,0) [0|1] "status" Vector__XXX\n'
        'SG_ RemainingChargingTime10sBit : 48|8@1+ (10,0) [0|2540] "seconds" Vector__XXX\n'
        'SG_ RemainingChargingTime1minBit : 56|8@1+ (1,0) [0|255] "minutes" Vector__XXX'
    ),
}


class LeafChademoPort(CanBusNode):
    """Pretends to be a CHAdeMO station while a CCS charge runs through the LIM."""

    def __init__(self, device, frame_id, params=None, now=0.0):
        super().__init__(device, 0, frame_id, params, now)
        log.debug("Adding Leaf Chademo port")
        self.fields = {frame: parse_fields(text) for frame, text in _SIGNALS.items()}
        self.threshold_voltage = 0
        self.battery_voltage = 0
        self.charging_current_request = 0
        self.active_charging = False
        self.add_periodic(SEND_INTERVAL, self.prepare_and_send_frame)
        self.timeout_interval = TIMEOUT_INTERVAL

    def handle_frame(self, frame_id, data) -> None:
        if frame_id == VEHICLE_LIMITS_ID:
            field = self.fields[VEHICLE_LIMITS_ID]["MaximumBatteryVoltage"]
            self.threshold_voltage = int(read_field(data, field)) & 0xFFFF
        elif frame_id == VEHICLE_STATUS_ID:
            field = self.fields[VEHICLE_STATUS_ID]["ChargingCurrentRequest"]
            self.charging_current_request = int(read_field(data, field)) & 0xFF
            self.params.set_int(Param.CHADEMO_IREQ, self.charging_current_request)

    def prepare_and_send_frame(self) -> tuple[CanFrame, ...]:
        """Send the charger frames; nothing while a genuine CHAdeMO charge may run."""
        if not self.params.get_bool(Param.PLUG_DET) and not self.active_charging:
            return ()
        self.active_charging = True

        ccs_state = self.params.get_int(Param.CCS_STATE)
        stop_control = ccs_state > 6
        station_charging = True
        connector_locked = ccs_state < 8

        battery_voltage = self.params.get_int(Param.UDC) & 0xFFFF
        if battery_voltage != 0:
            self.battery_voltage = battery_voltage
        output_voltage = self.battery_voltage if connector_locked else 0
        output_current = self.charging_current_request

        limits = bytearray(8)
        limits[0] = 1  # vehicle welding detection supported
        limits[1:3] = AVAILABLE_OUTPUT_VOLTAGE.to_bytes(2, "little")
        limits[3] = AVAILABLE_OUTPUT_CURRENT
        limits[4:6] = self.threshold_voltage.to_bytes(2, "little")
        first = self.send_frame(limits, CHARGER_LIMITS_ID)

        status = bytearray(8)
        status[0] = CONTROL_PROTOCOL_NUMBER
        status[1:3] = output_voltage.to_bytes(2, "little")
        status[3] = output_current
        status[5] = (
            (0x20 if stop_control else 0)
            | (0x01 if station_charging else 0)
            | (0x04 if connector_locked else 0)
        )
        status[6] = 0
        status[7] = REMAINING_CHARGE_MINUTES
        second = self.send_frame(status, CHARGER_STATUS_ID)
        return first, second

    def receiving_frame_ids(self) -> list[int]:
        return [VEHICLE_LIMITS_ID, VEHICLE_TIMES_ID, VEHICLE_STATUS_ID, 0x200]

    def close(self) -> None:
        """Withdraw the current request and stop the node."""
        if self.is_closed:
            return
        self.params.set_int(Param.CHADEMO_IREQ, 0)
        super().close()