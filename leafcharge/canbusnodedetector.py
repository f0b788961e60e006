"""Creates CAN nodes on demand when frames with known ids appear on a bus."""

from __future__ import annotations

import logging

from .canbusnode import CanBusNode, CanFrame, Signal
from .params import ParamStore

log = logging.getLogger(__name__)


class CanBusNodeDetector:
    """Routes received frames to nodes, creating them from registered factories.

    A factory is called as ``factory(device, frame_id, params, now)`` and
    returns a :class:`CanBusNode` or None.
    """

    def __init__(self, params=None):
        self.params = params if params is not None else ParamStore()
        self.node_created = Signal()
        self.node_removed = Signal()
        self._factories: dict[int, object] = {}
        self._nodes: dict[int, CanBusNode] = {}

    def register_node_type(self, frame_id, factory) -> None:
        self._factories[frame_id] = factory

    def _unique_nodes(self) -> list[CanBusNode]:
        return list(dict.fromkeys(self._nodes[key] for key in sorted(self._nodes)))

    def created_node_instances(self, cls) -> list:
        """Live nodes that are instances of ``cls``, each listed once."""
        return [node for node in self._unique_nodes() if isinstance(node, cls)]

    def frame_received(self, device, frame: CanFrame, now=0.0) -> None:
        """Handle one frame read from ``device``."""
        frame_id = frame.frame_id
        if frame_id not in self._nodes:
            if len(frame.payload) != 8:
                return
            factory = self._factories.get(frame_id)
            if factory is None:
                return
            node = factory(device, frame_id, self.params, now)
            if node is None:
                return
            self.add_node(node)
            log.debug("%x %s", frame_id, frame.payload.hex())
            self.node_created.emit(node)
        node = self._nodes.get(frame_id)
        if node is None:
            raise LookupError(f"node created for frame {frame_id:#x} does not receive it")
        if node.device is device:
            node.receive_frame(frame, now)

    def add_node(self, node: CanBusNode) -> None:
        for frame_id in node.receiving_frame_ids():
            self._nodes[frame_id] = node
        node.timeout.connect(lambda: self.remove_node(node))

    def remove_node(self, node: CanBusNode) -> None:
        for frame_id in node.receiving_frame_ids():
            self._nodes.pop(frame_id, None)
        node.close()
        self.node_removed.emit(node)

    def tick(self, now) -> None:
        """Advance time for every live node."""
        for node in self._unique_nodes():
            node.tick(now)