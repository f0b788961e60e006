import pytest

from leafcharge.chargingrelaycontroller import (
    RELAY_PINS,
    ChargingMode,
    ChargingRelayController,
    SysfsGpio,
)
from leafcharge.params import Param, ParamStore


class FakePin:
    def __init__(self):
        self.high = True
        self.setup_calls = 0
        self.writes = []

    def setup_output(self):
        self.setup_calls += 1
        self.high = False

    def read(self):
        return self.high

    def write(self, high):
        self.writes.append(high)
        self.high = high


@pytest.fixture
def params():
    return ParamStore()


@pytest.fixture
def pins():
    return {number: FakePin() for number in RELAY_PINS}


@pytest.fixture
def relays(params, pins):
    return ChargingRelayController(params, pins)


def test_pins_set_up_low(params, pins):
    relays = ChargingRelayController(params, pins)
    assert all(pin.setup_calls == 1 for pin in pins.values())
    assert relays.charging_mode == ChargingMode.LEAF_OB_CHARGER
    assert relays.chademo_proximity is False
    assert relays.charge_flap_open is False
    assert relays.charger_start1 is False
    assert relays.charger_start2 is False


def test_missing_pin_rejected(params):
    with pytest.raises(ValueError):
        ChargingRelayController(params, {2: FakePin()})


def test_tick_before_interval_does_nothing(relays, pins):
    relays.tick(0.1)
    assert relays.charging_mode == ChargingMode.LEAF_OB_CHARGER
    assert relays.charge_flap_open is False


def test_defaults_select_lim_and_open_flap(relays, pins):
    relays.tick(0.25)
    assert relays.charging_mode == ChargingMode.LIM
    assert pins[15].high is True
    assert pins[2].high is True
    assert relays.chademo_proximity is False


@pytest.mark.parametrize("param,value", [(Param.PILOT_TYP, 1), (Param.PILOT_TYP, 2), (Param.OBC_CHARGE_STATUS, 4)])
def test_onboard_charger_mode(relays, pins, params, param, value):
    params.set_int(param, value)
    relays.deduct_charging_mode()
    assert relays.charging_mode == ChargingMode.LEAF_OB_CHARGER
    assert pins[15].high is False


def test_mode_written_only_on_change(relays, pins):
    relays.deduct_charging_mode()
    relays.deduct_charging_mode()
    assert relays.charging_mode == ChargingMode.LIM
    assert pins[15].writes == [True]


def test_ccs_charge_fakes_chademo(relays, pins, params):
    params.set_int(Param.PLUG_DET, 1)
    params.set_int(Param.CCS_STATE, 3)
    relays.deduct_charging_mode()
    assert (relays.chademo_proximity, relays.charger_start1, relays.charger_start2) == (True, True, True)


def test_state_eight_keeps_only_start1(relays, pins, params):
    params.set_int(Param.PLUG_DET, 1)
    params.set_int(Param.CCS_STATE, 8)
    relays.deduct_charging_mode()
    assert relays.charger_start1 is True
    assert relays.charger_start2 is False


def _relay_state(relays):
    return (relays.chademo_proximity, relays.charger_start1, relays.charger_start2)


def test_release_happens_in_order(relays, pins, params):
    params.set_int(Param.PLUG_DET, 1)
    params.set_int(Param.CCS_STATE, 3)
    relays.deduct_charging_mode()
    params.set_int(Param.PLUG_DET, 0)
    params.set_int(Param.CCS_STATE, 0)
    relays.deduct_charging_mode()
    assert _relay_state(relays) == (True, True, False)
    relays.deduct_charging_mode()
    assert _relay_state(relays) == (True, False, False)
    relays.deduct_charging_mode()
    assert _relay_state(relays) == (False, False, False)


def test_proximity_blocked_while_start1_set(relays):
    relays.chademo_proximity = True
    relays.charger_start1 = True
    relays.chademo_proximity = False
    assert relays.chademo_proximity is True


def test_flap_closes_when_driving(relays, params):
    relays.fake_charge_flap()
    assert relays.charge_flap_open is True
    params.set_int(Param.IDC, -5)
    relays.fake_charge_flap()
    assert relays.charge_flap_open is False


def test_flap_stays_open_with_plug(relays, params):
    params.set_int(Param.IDC, -5)
    params.set_int(Param.PLUG_DET, 1)
    relays.fake_charge_flap()
    assert relays.charge_flap_open is True


def test_sysfs_gpio_setup_and_io(tmp_path):
    line = tmp_path / "gpio2"
    line.mkdir()
    (line / "direction").write_text("in\n")
    (line / "value").write_text("1\n")
    gpio = SysfsGpio(2, tmp_path)
    gpio.setup_output()
    assert (line / "direction").read_text() == "out"
    assert gpio.read() is False
    assert not (tmp_path / "export").exists()
    gpio.write(True)
    assert (line / "value").read_text() == "1"
    assert gpio.read() is True


def test_sysfs_gpio_exports_missing_line(tmp_path):
    gpio = SysfsGpio(15, tmp_path)
    with pytest.raises(FileNotFoundError):
        gpio.setup_output()
    assert (tmp_path / "export").read_text() == "15"