from __future__ import annotations

from dataclasses import dataclass, field
import itertools
from typing import Any, Protocol, Sequence

from livechart.elements import FillKey


class SceneGraph(Protocol):
    """Retained-mode drawing surface driven by the charts.

    ``insert`` places a new node, optionally at a neutral ``start`` geometry the
    scene animates from. ``exit`` animates a node towards ``end`` or, when
    ``end`` is None, drops its geometry outright. ``destroy`` frees the node
    once any exit animation has had time to finish.
    """

    def create_node(self, kind: str) -> Any:
        ...

    def insert(self, node: Any, *, start: Any | None = None) -> None:
        ...

    def update(self, node: Any, attrs: Any, *, fill: Any | None = None) -> None:
        ...

    def exit(self, node: Any, *, end: Any | None = None) -> None:
        ...

    def destroy(self, node: Any) -> None:
        ...

    def create_fill(self, key: FillKey) -> Any:
        ...

    def destroy_fill(self, fill: Any) -> None:
        ...

    def set_path(self, name: str, coords: Sequence[tuple[float, float]], *, closed: bool = False) -> None:
        ...


@dataclass
class SceneNode:
    node_id: int
    kind: str
    attrs: Any = None
    start: Any = None
    end: Any = None
    fill: Any = None
    inserted: bool = False
    exiting: bool = False
    destroyed: bool = False


@dataclass
class RecordingScene:
    """In-memory scene graph that records every operation it receives."""

    ops: list[tuple[str, Any]] = field(default_factory=list)
    nodes: dict[int, SceneNode] = field(default_factory=dict)
    fills: dict[str, FillKey] = field(default_factory=dict)
    paths: dict[str, tuple[tuple[tuple[float, float], ...], bool]] = field(default_factory=dict)
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))

    def create_node(self, kind: str) -> SceneNode:
        node = SceneNode(node_id=next(self._ids), kind=kind)
        self.nodes[node.node_id] = node
        self.ops.append(("create", node.node_id))
        return node

    def insert(self, node: SceneNode, *, start: Any | None = None) -> None:
        node.inserted = True
        node.start = start
        node.attrs = start
        self.ops.append(("insert", node.node_id))

    def update(self, node: SceneNode, attrs: Any, *, fill: Any | None = None) -> None:
        node.attrs = attrs
        node.fill = fill
        node.exiting = False
        self.ops.append(("update", node.node_id))

    def exit(self, node: SceneNode, *, end: Any | None = None) -> None:
        node.exiting = True
        node.end = end
        node.attrs = end
        self.ops.append(("exit", node.node_id))

    def destroy(self, node: SceneNode) -> None:
        node.destroyed = True
        self.nodes.pop(node.node_id, None)
        self.ops.append(("destroy", node.node_id))

    def create_fill(self, key: FillKey) -> str:
        fill_id = f"fill-{next(self._ids)}"
        self.fills[fill_id] = key
        self.ops.append(("create_fill", fill_id))
        return fill_id

    def destroy_fill(self, fill: str) -> None:
        self.fills.pop(fill, None)
        self.ops.append(("destroy_fill", fill))

    def set_path(self, name: str, coords: Sequence[tuple[float, float]], *, closed: bool = False) -> None:
        self.paths[name] = (tuple((float(x), float(y)) for x, y in coords), closed)
        self.ops.append(("path", name))

    def count(self, op: str) -> int:
        return sum(1 for name, _ in self.ops if name == op)

    def clear_ops(self) -> None:
        self.ops.clear()

    def live_nodes(self, kind: str | None = None) -> list[SceneNode]:
        return [n for n in self.nodes.values() if kind is None or n.kind == kind]
