"""
Node catalog: the closed set of node types and the schema each one follows.

A node's ports are fully determined by its type, so every node is built here
and nowhere else.
"""

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from common.errors import SchemaError, UnknownNodeType


class NodeType(str, Enum):
    NUMBER = "number"
    VARIABLE = "variable"
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"
    POWER = "power"
    OUTPUT = "output"

    @classmethod
    def coerce(cls, value) -> "NodeType":
        """Turn a string (or enum) into a ``NodeType``."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnknownNodeType(value) from None


class PortDirection(str, Enum):
    INPUT = "input"
    OUTPUT = "output"


@dataclass(frozen=True)
class NodeSchema:
    """Port layout and defaults for one node type."""

    node_type: NodeType
    name: str
    input_suffixes: tuple
    output_suffixes: tuple
    label: str
    value: Optional[float] = None
    variable: Optional[str] = None
    operator: Optional[str] = None
    description: str = ""

    @property
    def is_binary(self) -> bool:
        return self.operator is not None

    @property
    def input_count(self) -> int:
        return len(self.input_suffixes)

    @property
    def output_count(self) -> int:
        return len(self.output_suffixes)


_BINARY_IN = ("in1", "in2")
_OUT = ("out",)

NODE_SCHEMAS = {
    NodeType.NUMBER: NodeSchema(
        NodeType.NUMBER, "Number Constant", (), _OUT, "0", value=0,
        description="A numerical constant value"),
    NodeType.VARIABLE: NodeSchema(
        NodeType.VARIABLE, "Variable", (), _OUT, "x", variable="x",
        description="A mathematical variable"),
    NodeType.ADD: NodeSchema(
        NodeType.ADD, "Addition", _BINARY_IN, _OUT, "+", operator="+",
        description="Adds two numbers together"),
    NodeType.SUBTRACT: NodeSchema(
        NodeType.SUBTRACT, "Subtraction", _BINARY_IN, _OUT, "−", operator="-",
        description="Subtracts the second number from the first"),
    NodeType.MULTIPLY: NodeSchema(
        NodeType.MULTIPLY, "Multiplication", _BINARY_IN, _OUT, "×", operator="*",
        description="Multiplies two numbers together"),
    NodeType.DIVIDE: NodeSchema(
        NodeType.DIVIDE, "Division", _BINARY_IN, _OUT, "÷", operator="/",
        description="Divides the first number by the second"),
    NodeType.POWER: NodeSchema(
        NodeType.POWER, "Exponentiation", _BINARY_IN, _OUT, "^", operator="^",
        description="Raises the first number to the power of the second"),
    NodeType.OUTPUT: NodeSchema(
        NodeType.OUTPUT, "Output", ("in",), (), "Result",
        description="Displays the final equation result"),
}

BINARY_TYPES = frozenset(t for t, s in NODE_SCHEMAS.items() if s.is_binary)


def get_schema(node_type) -> NodeSchema:
    return NODE_SCHEMAS[NodeType.coerce(node_type)]


# ── Entities ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class Port:
    id: str
    node_id: str
    direction: PortDirection


@dataclass
class Node:
    id: str
    type: NodeType
    label: str
    position: Position = field(default_factory=Position)
    value: Optional[float] = None
    variable: Optional[str] = None
    inputs: tuple = ()
    outputs: tuple = ()

    @property
    def ports(self) -> tuple:
        return self.inputs + self.outputs

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "label": self.label,
            "position": {"x": self.position.x, "y": self.position.y},
            "value": self.value,
            "variable": self.variable,
        }


def _as_position(position) -> Position:
    if position is None:
        return Position()
    if isinstance(position, Position):
        return position
    if isinstance(position, dict):
        return Position(float(position.get("x", 0)), float(position.get("y", 0)))
    x, y = position
    return Position(float(x), float(y))


def create_node(node_type, position=None, node_id: str = "n1") -> Node:
    """Build a node of *node_type* with the ports and defaults of its schema.

    Raises ``UnknownNodeType`` for anything outside :class:`NodeType`.
    """
    schema = get_schema(node_type)
    inputs = tuple(Port(f"{node_id}-{s}", node_id, PortDirection.INPUT)
                   for s in schema.input_suffixes)
    outputs = tuple(Port(f"{node_id}-{s}", node_id, PortDirection.OUTPUT)
                    for s in schema.output_suffixes)
    return Node(
        id=node_id,
        type=schema.node_type,
        label=schema.label,
        position=_as_position(position),
        value=schema.value,
        variable=schema.variable,
        inputs=inputs,
        outputs=outputs,
    )


# ── Value helpers ────────────────────────────────────────────────────────

_VARIABLE_RE = re.compile(r"^[a-zA-Zα-ωΑ-Ω][a-zA-Z0-9α-ωΑ-Ω]*$")
MAX_VARIABLE_LENGTH = 20

# Integral floats at or above this print in exponent form (1e+16, not 17 digits).
_PLAIN_INT_LIMIT = 1e16


def fmt_num(value: Union[int, float]) -> str:
    """Format a number as a literal that reads back to the same value.

    Integral values print without ``.0``; everything else uses the shortest
    round-trip form, so ``1e-11`` stays ``1e-11`` instead of collapsing to ``0``.
    """
    if isinstance(value, int):
        return str(value)
    if value.is_integer() and abs(value) < _PLAIN_INT_LIMIT:
        return str(int(value))
    return repr(float(value))


def validate_number(value) -> float:
    """Return *value* as a finite number or raise ``SchemaError``."""
    if isinstance(value, bool):
        raise SchemaError("Please enter a valid number")
    try:
        num = float(value.strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError, OverflowError):
        raise SchemaError("Please enter a valid number") from None
    if not math.isfinite(num):
        raise SchemaError("Please enter a valid number")
    return int(num) if num.is_integer() and abs(num) < _PLAIN_INT_LIMIT else num


def validate_variable(name) -> str:
    """Return a trimmed variable name or raise ``SchemaError``."""
    if not isinstance(name, str) or not name.strip():
        raise SchemaError("Variable name is required")
    name = name.strip()
    if len(name) > MAX_VARIABLE_LENGTH:
        raise SchemaError(f"Variable name is too long (max {MAX_VARIABLE_LENGTH} characters)")
    if not _VARIABLE_RE.match(name):
        raise SchemaError(
            "Variable names should start with a letter and contain only "
            "letters, numbers, or Greek letters"
        )
    return name
