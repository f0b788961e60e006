import pytest

from leafcharge.canbusnode import CanFrame
from leafcharge.params import ParamStore
from leafcharge.tccharger import StatusFlag, TcCharger, sending_frame_id_for


class FakeDevice:
    def __init__(self):
        self.frames = []

    def write_frame(self, frame):
        self.frames.append(frame)


@pytest.fixture
def device():
    return FakeDevice()


@pytest.fixture
def charger(device):
    return TcCharger(device, 0x18FF50E7, ParamStore(), 0.0)


@pytest.mark.parametrize(
    "receiving, sending",
    [(0x18FF50E7, 0x1806E7F4), (0x18FF50E5, 0x1806E5F4), (0x123, 0x0)],
)
def test_sending_frame_id_for(receiving, sending):
    assert sending_frame_id_for(receiving) == sending


def test_initial_state(charger):
    assert charger.status == StatusFlag.COMMUNICATION_TIMEOUT
    assert charger.frame_id_sending == 0x1806E7F4
    assert charger.receiving_frame_ids() == [0x18FF50E7]


def test_set_voltage_sends_frame(charger, device):
    seen = []
    charger.max_output_voltage_changed.connect(seen.append)
    charger.set_max_output_voltage(43.5)
    assert charger.max_output_voltage == 43.5
    assert seen == [43.5]
    assert len(device.frames) == 1
    frame = device.frames[0]
    assert frame.frame_id == 0x1806E7F4
    assert int.from_bytes(frame.payload[0:2], "big") == 435
    assert frame.payload[2:] == bytes(6)


def test_set_same_value_twice_sends_once(charger, device):
    charger.set_max_output_current(12.5)
    charger.set_max_output_current(12.5)
    assert len(device.frames) == 1
    assert charger.max_output_current == 12.5


def test_voltage_and_current_round_trip_through_frame(charger, device):
    charger.set_max_output_voltage(400)
    charger.set_max_output_current(8)
    payload = device.frames[-1].payload
    assert int.from_bytes(payload[0:2], "big") / 10 == charger.max_output_voltage
    assert int.from_bytes(payload[2:4], "big") / 10 == charger.max_output_current


@pytest.mark.parametrize("value", [-1, float("inf"), float("nan"), 7000])
def test_out_of_range_limit_raises(charger, value):
    with pytest.raises(ValueError):
        charger.set_max_output_voltage(value)


def test_periodic_send(charger, device):
    charger.tick(0.5)
    assert device.frames == []
    charger.tick(1.0)
    assert device.frames == [CanFrame(0x1806E7F4, bytes(8))]


def test_receive_status(charger):
    statuses = []
    charger.status_changed.connect(statuses.append)
    charger.receive_frame(CanFrame(0x18FF50E7, bytes([0, 10, 0, 5, 0, 0, 0, 0])))
    assert charger.output_voltage == 1.0
    assert charger.output_current == 0.5
    assert charger.status == StatusFlag.NORMAL
    assert statuses == [StatusFlag.NORMAL]


def test_high_byte_weighs_255(charger):
    charger.receive_frame(CanFrame(0x18FF50E7, bytes([1, 0, 0, 0, 0, 0, 0, 0])))
    assert charger.output_voltage == 25.5


def test_combined_status_flags(charger):
    charger.receive_frame(CanFrame(0x18FF50E7, bytes([0, 0, 0, 0, 0x03, 0, 0, 0])))
    assert charger.status == StatusFlag.HARDWARE_FAILURE | StatusFlag.OVER_TEMPERATURE_PROTECTION
    assert StatusFlag.INCORRECT_INPUT_VOLTAGE not in charger.status


def test_unchanged_values_emit_nothing(charger):
    voltages = []
    charger.output_voltage_changed.connect(voltages.append)
    frame = CanFrame(0x18FF50E7, bytes([0, 20, 0, 0, 0, 0, 0, 0]))
    charger.receive_frame(frame)
    charger.receive_frame(frame)
    assert voltages == [2.0]