"""Base class for devices that talk on a CAN bus, with signals and polled timers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from .params import ParamStore

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


class Signal:
    """A list of callbacks invoked on :meth:`emit`."""

    def __init__(self):
        self._slots: list[Callable] = []

    def connect(self, callback) -> None:
        self._slots.append(callback)

    def disconnect(self, callback) -> None:
        """Remove ``callback``; raise ValueError if it is not connected."""
        self._slots.remove(callback)

    def emit(self, *args) -> None:
        for slot in list(self._slots):
            slot(*args)


@dataclass(frozen=True)
class CanFrame:
    """A CAN frame: identifier and payload."""

    frame_id: int
    payload: bytes = b""

    def __post_init__(self):
        object.__setattr__(self, "payload", bytes(self.payload))


class PeriodicTask:
    """Calls ``callback`` every ``interval`` seconds when polled."""

    def __init__(self, interval, callback, start=0.0):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.callback = callback
        self.next_due = start + interval

    def poll(self, now) -> bool:
        """Run the callback if it is due; return whether it ran."""
        if now < self.next_due:
            return False
        self.next_due += self.interval
        if self.next_due <= now:
            self.next_due = now + self.interval
        self.callback()
        return True


class CanBusNode:
    """A device on the bus, identified by the frame ids it sends and receives."""

    def __init__(self, device, frame_id_sending, frame_id_receiving, params=None, now=0.0):
        self.device = device
        self.frame_id_sending = frame_id_sending
        self.frame_id_receiving = frame_id_receiving
        self.params = params if params is not None else ParamStore()
        self.timeout_interval = DEFAULT_TIMEOUT
        self.changed = Signal()
        self.timeout = Signal()
        self.closed = Signal()
        self.is_closed = False
        self._now = now
        self._deadline: float | None = None
        self._tasks: list[PeriodicTask] = []

    def send_frame(self, data, frame_id=None) -> CanFrame:
        """Write ``data`` to the device, by default under the sending frame id."""
        frame = CanFrame(self.frame_id_sending if frame_id is None else frame_id, bytes(data))
        self.device.write_frame(frame)
        return frame

    def receive_frame(self, frame: CanFrame, now=0.0) -> None:
        """Restart the timeout and dispatch ``frame`` to the handlers."""
        self._now = now
        self._deadline = now + self.timeout_interval
        self.handle_payload(frame.payload)
        self.handle_frame(frame.frame_id, frame.payload)

    def handle_payload(self, data) -> None:
        """Hook for subclasses interested only in the payload."""

    def handle_frame(self, frame_id, data) -> None:
        """Hook for subclasses interested in the frame id and payload."""

    def receiving_frame_ids(self) -> list[int]:
        return [self.frame_id_receiving]

    def add_periodic(self, interval, callback) -> PeriodicTask:
        """Run ``callback`` every ``interval`` seconds from the current time."""
        task = PeriodicTask(interval, callback, self._now)
        self._tasks.append(task)
        return task

    def tick(self, now) -> None:
        """Advance time: run due periodic tasks and report a timeout."""
        if self.is_closed:
            return
        self._now = now
        for task in list(self._tasks):
            if self.is_closed:
                return
            task.poll(now)
        if self._deadline is not None and now >= self._deadline:
            self._deadline = now + self.timeout_interval
            self.timeout.emit()

    def close(self) -> None:
        """Stop all timers and emit :attr:`closed` once."""
        if self.is_closed:
            return
        self.is_closed = True
        self._tasks.clear()
        self._deadline = None
        self.closed.emit(self)