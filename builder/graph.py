"""
Graph model: live nodes and connections, addressed by id.

Every mutation validates first and only then touches state, so a rejected
edit leaves the graph exactly as it was.
"""

import logging
from dataclasses import dataclass
from itertools import count
from typing import Optional

from builder.constraints import Constraint, ConstraintSet
from builder.nodes import (
    Node,
    NodeType,
    Port,
    PortDirection,
    _as_position,
    create_node,
    fmt_num,
    validate_number,
    validate_variable,
)
from common.errors import InvalidConnection, SchemaError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Connection:
    id: str
    source: str   # output port id
    target: str   # input port id

    def to_dict(self) -> dict:
        return {"id": self.id, "source": self.source, "target": self.target}


class Graph:
    """All nodes and connections of one editor canvas."""

    def __init__(self) -> None:
        self._nodes: dict[str, Node] = {}
        self._connections: dict[str, Connection] = {}
        self._ports: dict[str, Port] = {}
        self._incoming: dict[str, str] = {}     # target port id -> connection id
        self._node_ids = count(1)
        self._connection_ids = count(1)
        self.constraints = ConstraintSet()

    # ── Lookups ──────────────────────────────────────────────────────

    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    @property
    def connections(self) -> list[Connection]:
        return list(self._connections.values())

    def node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def port(self, port_id: str) -> Optional[Port]:
        return self._ports.get(port_id)

    def node_for_port(self, port_id: str) -> Optional[Node]:
        port = self._ports.get(port_id)
        return self._nodes.get(port.node_id) if port else None

    def incoming(self, port_id: str) -> Optional[Connection]:
        """The connection feeding input port *port_id*, if any."""
        conn_id = self._incoming.get(port_id)
        return self._connections.get(conn_id) if conn_id else None

    def connections_from(self, port_id: str) -> list[Connection]:
        return [c for c in self._connections.values() if c.source == port_id]

    def nodes_of_type(self, node_type) -> list[Node]:
        node_type = NodeType.coerce(node_type)
        return [n for n in self._nodes.values() if n.type is node_type]

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id) -> bool:
        return node_id in self._nodes

    # ── Nodes ────────────────────────────────────────────────────────

    def _next_node_id(self) -> str:
        while True:
            node_id = f"n{next(self._node_ids)}"
            if node_id not in self._nodes:
                return node_id

    def create_node(self, node_type, position=None, node_id: Optional[str] = None) -> Node:
        """Create a node of *node_type* and add it to the graph."""
        if node_id is not None and node_id in self._nodes:
            raise SchemaError(f"Node id '{node_id}' is already in use")
        node = create_node(node_type, position, node_id or self._next_node_id())
        self._nodes[node.id] = node
        for port in node.ports:
            self._ports[port.id] = port
        logger.debug("Created %s node %s", node.type.value, node.id)
        return node

    def _require_node(self, node_id: str) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise SchemaError(f"Node '{node_id}' does not exist")
        return node

    def set_value(self, node_id: str, value) -> Node:
        node = self._require_node(node_id)
        if node.type is not NodeType.NUMBER:
            raise SchemaError(f"Only number nodes carry a value (got {node.type.value})")
        num = validate_number(value)
        self.constraints.check(node_id, num)
        node.value = num
        node.label = fmt_num(num)
        return node

    def set_variable(self, node_id: str, name) -> Node:
        node = self._require_node(node_id)
        if node.type is not NodeType.VARIABLE:
            raise SchemaError(f"Only variable nodes carry a symbol (got {node.type.value})")
        name = validate_variable(name)
        node.variable = name
        node.label = name
        return node

    def set_label(self, node_id: str, label) -> Node:
        node = self._require_node(node_id)
        if not isinstance(label, str) or not label.strip():
            raise SchemaError("Label cannot be empty")
        node.label = label.strip()
        return node

    def move_node(self, node_id: str, position) -> Node:
        node = self._require_node(node_id)
        node.position = _as_position(position)
        return node

    def add_constraint(self, node_id: str, constraint) -> Constraint:
        """Attach a value constraint to a number or variable node.

        Accepts a :class:`Constraint` or its dict form.  Raises
        ``ConstraintConflict`` when it can never hold with the existing ones.
        """
        node = self._require_node(node_id)
        if node.type not in (NodeType.NUMBER, NodeType.VARIABLE):
            raise SchemaError(f"Only number and variable nodes take constraints (got {node.type.value})")
        if isinstance(constraint, dict):
            constraint = Constraint.from_dict(constraint)
        return self.constraints.add(node_id, constraint)

    def remove_constraint(self, node_id: str, constraint_id: str) -> bool:
        return self.constraints.remove(node_id, constraint_id)

    def remove_node(self, node_id: str) -> None:
        """Remove a node and every connection touching its ports."""
        node = self._nodes.get(node_id)
        if node is None:
            return
        port_ids = {p.id for p in node.ports}
        for conn in [c for c in self._connections.values()
                     if c.source in port_ids or c.target in port_ids]:
            self._drop_connection(conn)
        for port_id in port_ids:
            self._ports.pop(port_id, None)
        self.constraints.clear(node_id)
        del self._nodes[node_id]
        logger.debug("Removed node %s", node_id)

    # ── Connections ──────────────────────────────────────────────────

    def _validate_connection(self, source_port_id: str, target_port_id: str) -> None:
        source = self._ports.get(source_port_id)
        target = self._ports.get(target_port_id)
        if source is None:
            raise InvalidConnection(f"Source port '{source_port_id}' not found")
        if target is None:
            raise InvalidConnection(f"Target port '{target_port_id}' not found")
        if source.direction is not PortDirection.OUTPUT:
            raise InvalidConnection(f"Port '{source_port_id}' is not an output port")
        if target.direction is not PortDirection.INPUT:
            raise InvalidConnection(f"Port '{target_port_id}' is not an input port")
        if source.node_id == target.node_id:
            raise InvalidConnection("Cannot connect node to itself")
        if target_port_id in self._incoming:
            raise InvalidConnection(f"Input port '{target_port_id}' already has a connection")

    def add_connection(self, source_port_id: str, target_port_id: str,
                       connection_id: Optional[str] = None) -> Connection:
        """Wire an output port into an input port."""
        self._validate_connection(source_port_id, target_port_id)
        if connection_id is None:
            connection_id = f"c{next(self._connection_ids)}"
            while connection_id in self._connections:
                connection_id = f"c{next(self._connection_ids)}"
        elif connection_id in self._connections:
            raise InvalidConnection(f"Connection id '{connection_id}' is already in use")
        conn = Connection(connection_id, source_port_id, target_port_id)
        self._connections[conn.id] = conn
        self._incoming[target_port_id] = conn.id
        return conn

    def connect(self, source_node_id: str, target_node_id: str, input_index: int = 0) -> Connection:
        """Shortcut: wire *source_node_id*'s output into input number *input_index*."""
        source = self._require_node(source_node_id)
        target = self._require_node(target_node_id)
        if not source.outputs:
            raise InvalidConnection(f"Node '{source_node_id}' has no output port")
        if not 0 <= input_index < len(target.inputs):
            raise InvalidConnection(f"Node '{target_node_id}' has no input #{input_index}")
        return self.add_connection(source.outputs[0].id, target.inputs[input_index].id)

    def _drop_connection(self, conn: Connection) -> None:
        del self._connections[conn.id]
        if self._incoming.get(conn.target) == conn.id:
            del self._incoming[conn.target]

    def remove_connection(self, connection_id: str) -> None:
        conn = self._connections.get(connection_id)
        if conn is not None:
            self._drop_connection(conn)

    # ── Whole-graph helpers ──────────────────────────────────────────

    def clear(self) -> None:
        self._nodes.clear()
        self._connections.clear()
        self._ports.clear()
        self._incoming.clear()
        self.constraints.clear()

    def stats(self) -> dict:
        by_type: dict[str, int] = {}
        for node in self._nodes.values():
            by_type[node.type.value] = by_type.get(node.type.value, 0) + 1
        return {
            "total_nodes": len(self._nodes),
            "node_types": by_type,
            "total_connections": len(self._connections),
        }

    def to_dict(self) -> dict:
        return {
            "nodes": [n.to_dict() for n in self._nodes.values()],
            "connections": [c.to_dict() for c in self._connections.values()],
            "constraints": self.constraints.to_records(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Graph":
        """Rebuild a graph, routing every item through the normal validation."""
        graph = cls()
        for raw in data.get("nodes", []):
            node = graph.create_node(raw["type"], raw.get("position"), raw.get("id"))
            if node.type is NodeType.NUMBER and raw.get("value") is not None:
                graph.set_value(node.id, raw["value"])
            if node.type is NodeType.VARIABLE and raw.get("variable"):
                graph.set_variable(node.id, raw["variable"])
            # Applied last: value and variable edits reset the label.
            if raw.get("label"):
                graph.set_label(node.id, raw["label"])
        for raw in data.get("connections", []):
            graph.add_connection(raw["source"], raw["target"], raw.get("id"))
        for raw in data.get("constraints", []):
            graph.add_constraint(raw["target"], raw)
        return graph

    def copy(self) -> "Graph":
        return Graph.from_dict(self.to_dict())

    def __repr__(self) -> str:
        return f"Graph(nodes={len(self._nodes)}, connections={len(self._connections)})"
