import sys

import pytest

from leafcharge.app import (
    _pack_frame,
    _unpack_frame,
    available_interfaces,
    build_detector,
    main,
)
from leafcharge.canbusnode import CanFrame
from leafcharge.leafchademoport import LeafChademoPort
from leafcharge.leafhvbattery import LeafHVBattery
from leafcharge.leafobcharger import LeafOBCharger
from leafcharge.params import Param, ParamStore
from leafcharge.tccharger import TcCharger


class FakeDevice:
    def __init__(self):
        self.frames = []

    def write_frame(self, frame):
        self.frames.append(frame)


def make_net(root, kinds):
    for name, kind in kinds.items():
        (root / name).mkdir()
        (root / name / "type").write_text(kind + "\n")


def test_available_interfaces_lists_can_only(tmp_path):
    make_net(tmp_path, {"can0": "280", "eth0": "1", "vcan1": "280"})
    assert available_interfaces(tmp_path) == ["can0", "vcan1"]


def test_available_interfaces_missing_root(tmp_path):
    assert available_interfaces(tmp_path / "absent") == []


@pytest.mark.parametrize("frame_id", [0x1DB, 0x18FF50E5])
def test_frame_round_trip(frame_id):
    frame = CanFrame(frame_id, b"\x01\x02\x03")
    raw = _pack_frame(frame)
    assert len(raw) == 16
    assert _unpack_frame(raw) == frame


def test_extended_id_sets_flag():
    raw = _pack_frame(CanFrame(0x18FF50E7, bytes(8)))
    assert int.from_bytes(raw[:4], sys.byteorder) == 0x18FF50E7 | 0x80000000
    raw = _pack_frame(CanFrame(0x390, bytes(8)))
    assert int.from_bytes(raw[:4], sys.byteorder) == 0x390


def test_oversized_payload_rejected():
    with pytest.raises(ValueError):
        _pack_frame(CanFrame(0x100, bytes(9)))


def test_error_frame_is_dropped():
    raw = (0x20000000 | 0x4).to_bytes(4, sys.byteorder) + bytes(12)
    assert _unpack_frame(raw) is None


def test_short_raw_frame_rejected():
    with pytest.raises(ValueError):
        _unpack_frame(bytes(5))


@pytest.mark.parametrize(
    "frame_id,cls",
    [
        (0x1DB, LeafHVBattery),
        (0x390, LeafOBCharger),
        (0x100, LeafChademoPort),
        (0x18FF50E7, TcCharger),
        (0x18FF50E5, TcCharger),
    ],
)
def test_detector_creates_registered_nodes(frame_id, cls):
    detector = build_detector(ParamStore())
    detector.frame_received(FakeDevice(), CanFrame(frame_id, bytes(8)))
    created = detector.created_node_instances(cls)
    assert len(created) == 1
    assert frame_id in created[0].receiving_frame_ids()


def test_tc_charger_gets_matching_sending_id():
    detector = build_detector(ParamStore())
    detector.frame_received(FakeDevice(), CanFrame(0x18FF50E7, bytes(8)))
    assert detector.created_node_instances(TcCharger)[0].frame_id_sending == 0x1806E7F4


def test_detector_ignores_unknown_and_short_frames():
    detector = build_detector(ParamStore())
    device = FakeDevice()
    detector.frame_received(device, CanFrame(0x123, bytes(8)))
    detector.frame_received(device, CanFrame(0x1DB, bytes(4)))
    assert detector.created_node_instances(object) == []


def test_detector_shares_params():
    params = ParamStore()
    detector = build_detector(params)
    detector.frame_received(FakeDevice(), CanFrame(0x1DB, bytes(8)))
    assert params.get_int(Param.VOLTSPNT) == 435


def test_main_without_interfaces_fails(tmp_path):
    assert main(["--net-root", str(tmp_path), "--gpio-root", str(tmp_path)]) == 1