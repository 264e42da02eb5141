"""Node-graph equation builder."""

from builder.graph import Connection, Graph
from builder.nodes import Node, NodeType, Port, PortDirection, Position, create_node
from builder.synthesis import (
    GraphReport,
    SynthesisResult,
    evaluate,
    find_sinks,
    simplified,
    synthesize,
    synthesize_detailed,
    to_sympy,
    validate,
)
from builder.workspace import Workspace
