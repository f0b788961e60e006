"""Command-line entry point: open the CAN interfaces and run the control loop."""

from __future__ import annotations

import argparse
import contextlib
import logging
import selectors
import socket
import struct
import time
from pathlib import Path

from .canbusnode import CanFrame, PeriodicTask
from .canbusnodedetector import CanBusNodeDetector
from .chargingrelaycontroller import GPIO_ROOT, RELAY_PINS, ChargingRelayController, SysfsGpio
from .leafchademoport import LeafChademoPort
from .leafhvbattery import LeafHVBattery
from .leafobcharger import LeafOBCharger
from .params import ParamStore
from .tccharger import TcCharger
from .tcchargercontroller import TcChargerController

log = logging.getLogger(__name__)

NET_ROOT = "/sys/class/net"
ARPHRD_CAN = "280"

CAN_EFF_FLAG = 0x80000000
CAN_RTR_FLAG = 0x40000000
CAN_ERR_FLAG = 0x20000000
CAN_SFF_MASK = 0x000007FF
CAN_EFF_MASK = 0x1FFFFFFF

_FRAME = struct.Struct("=IB3x8s")
POLL_INTERVAL = 0.05
PARAM_DUMP_INTERVAL = 1.0


def _pack_frame(frame: CanFrame) -> bytes:
    payload = bytes(frame.payload)
    if len(payload) > 8:
        raise ValueError("classic CAN payloads hold at most 8 bytes")
    can_id = frame.frame_id
    if can_id > CAN_EFF_MASK or can_id < 0:
        raise ValueError(f"frame id {can_id:#x} out of range")
    if can_id > CAN_SFF_MASK:
        can_id |= CAN_EFF_FLAG
    return _FRAME.pack(can_id, len(payload), payload)


def _unpack_frame(raw: bytes) -> CanFrame | None:
    """Decode a raw socket frame; error and remote frames give None."""
    if len(raw) != _FRAME.size:
        raise ValueError(f"expected {_FRAME.size} bytes, got {len(raw)}")
    can_id, dlc, data = _FRAME.unpack(raw)
    if can_id & (CAN_ERR_FLAG | CAN_RTR_FLAG):
        return None
    mask = CAN_EFF_MASK if can_id & CAN_EFF_FLAG else CAN_SFF_MASK
    return CanFrame(can_id & mask, data[: min(dlc, 8)])


class SocketCanDevice:
    """A non-blocking raw SocketCAN interface."""

    def __init__(self, interface):
        self.interface = interface
        self._socket = socket.socket(socket.AF_CAN, socket.SOCK_RAW, socket.CAN_RAW)
        try:
            self._socket.bind((interface,))
            self._socket.setblocking(False)
        except OSError:
            self._socket.close()
            raise

    def write_frame(self, frame: CanFrame) -> bool:
        """Send ``frame``; a full transmit queue drops it and returns False."""
        try:
            self._socket.send(_pack_frame(frame))
        except OSError as error:
            log.warning("%s: dropped frame %#x: %s", self.interface, frame.frame_id, error)
            return False
        return True

    def read_all_frames(self) -> list[CanFrame]:
        frames = []
        while True:
            try:
                raw = self._socket.recv(_FRAME.size)
            except BlockingIOError:
                break
            frame = _unpack_frame(raw)
            if frame is not None:
                frames.append(frame)
        return frames

    def fileno(self) -> int:
        return self._socket.fileno()

    def close(self) -> None:
        self._socket.close()


def available_interfaces(root=NET_ROOT) -> list[str]:
    """Names of the CAN network interfaces under ``root``."""
    root = Path(root)
    if not root.is_dir():
        return []
    names = []
    for entry in sorted(root.iterdir()):
        try:
            kind = (entry / "type").read_text().strip()
        except OSError:
            continue
        if kind == ARPHRD_CAN:
            names.append(entry.name)
    return names


def build_detector(params=None) -> CanBusNodeDetector:
    """A detector that knows every supported node type."""
    detector = CanBusNodeDetector(params)
    detector.register_node_type(0x18FF50E7, TcCharger)  # protocol 998
    detector.register_node_type(0x18FF50E5, TcCharger)  # protocol 1430
    detector.register_node_type(0x100, LeafChademoPort)
    detector.register_node_type(0x390, LeafOBCharger)
    detector.register_node_type(0x1DB, LeafHVBattery)
    return detector


def _run(devices, params, gpio_root) -> None:
    now = time.monotonic()
    pins = {number: SysfsGpio(number, gpio_root) for number in RELAY_PINS}
    relays = ChargingRelayController(params, pins, now)
    detector = build_detector(params)
    controller = TcChargerController(detector, params, now)
    dump = PeriodicTask(
        PARAM_DUMP_INTERVAL,
        lambda: log.debug("%s", {p.name: v for p, v in params.snapshot().items()}),
        now,
    )
    with selectors.DefaultSelector() as selector:
        for device in devices:
            selector.register(device, selectors.EVENT_READ)
        try:
            while True:
                events = selector.select(POLL_INTERVAL)
                now = time.monotonic()
                for key, _ in events:
                    device = key.fileobj
                    for frame in device.read_all_frames():
                        detector.frame_received(device, frame, now)
                relays.tick(now)
                detector.tick(now)
                controller.tick(now)
                dump.poll(now)
        finally:
            controller.shutdown()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="leafcharge", description="Coordinate charging hardware on the CAN bus."
    )
    parser.add_argument("interfaces", nargs="*", help="CAN interfaces (default: all found)")
    parser.add_argument("--net-root", default=NET_ROOT, help="where network interfaces are listed")
    parser.add_argument("--gpio-root", default=GPIO_ROOT, help="sysfs GPIO directory")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    names = args.interfaces or available_interfaces(args.net_root)
    if not names:
        log.error("no CAN interfaces found")
        return 1

    params = ParamStore()
    with contextlib.ExitStack() as stack:
        devices = []
        try:
            for name in names:
                device = SocketCanDevice(name)
                stack.callback(device.close)
                devices.append(device)
            _run(devices, params, args.gpio_root)
        except KeyboardInterrupt:
            return 0
        except OSError as error:
            log.error("%s", error)
            return 1
    return 0