"""
Expression synthesis: compile a wired node graph into an algebraic expression.

The walk starts at the sink (an ``output`` node) and reads backwards through
the connections to the leaves.  Every binary result is parenthesised, so the
structure of the graph alone decides precedence.

The same walk also feeds a SymPy builder, which lets the editor evaluate or
simplify whatever the student has wired up.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import sympy
from sympy import Rational, Symbol

from builder.graph import Graph
from builder.nodes import BINARY_TYPES, NODE_SCHEMAS, Node, NodeType, fmt_num, validate_number
from common.errors import CyclicGraphError, SchemaError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SynthesisResult:
    expression: str
    sink_id: Optional[str]
    complete: bool
    degraded_nodes: tuple = ()


@dataclass(frozen=True)
class GraphReport:
    is_valid: bool
    errors: tuple = ()
    warnings: tuple = ()


# ── Sink resolution ─────────────────────────────────────────────────────

def find_sinks(graph: Graph) -> list[Node]:
    """All output nodes, in insertion order."""
    return graph.nodes_of_type(NodeType.OUTPUT)


def _resolve_sink(graph: Graph, sink_id: Optional[str]) -> Optional[Node]:
    if sink_id is not None:
        node = graph.node(sink_id)
        if node is None or node.type is not NodeType.OUTPUT:
            raise SchemaError(f"'{sink_id}' is not an output node")
        return node
    sinks = find_sinks(graph)
    if not sinks:
        return None
    if len(sinks) > 1:
        logger.warning(
            "Graph has %d output nodes; synthesizing from the first (%s)",
            len(sinks), sinks[0].id,
        )
    return sinks[0]


# ── Emitters ────────────────────────────────────────────────────────────

# Largest exact power, in decimal digits, the SymPy bridge will build.
MAX_POWER_DIGITS = 10_000


class _TextEmitter:
    def number(self, node: Node) -> str:
        return fmt_num(node.value) if node.value is not None else "0"

    def variable(self, node: Node) -> str:
        return node.variable or "x"

    def binary(self, node: Node, left: str, right: str) -> str:
        op = NODE_SCHEMAS[node.type].operator
        return f"({left} {op} {right})"

    def degraded(self, node: Node) -> str:
        return node.label


def _literal(value):
    if isinstance(value, (int, float, str)):
        return Rational(fmt_num(validate_number(value)))
    return sympy.sympify(value)


def _power(base, exponent):
    # Integer powers evaluate eagerly, so bound the size before SymPy builds one.
    if base.is_Number and exponent.is_Number and base != 0:
        try:
            digits = abs(float(exponent * sympy.log(abs(base), 10)))
        except OverflowError:
            digits = float("inf")
        if digits > MAX_POWER_DIGITS:
            raise ValueError(
                f"Power is too large to evaluate (about {digits:.3g} digits)."
            )
    return base ** exponent


class _SympyEmitter:
    def __init__(self, bindings: Optional[dict] = None) -> None:
        self.bindings = {name: _literal(v) for name, v in (bindings or {}).items()}

    def number(self, node: Node):
        return Rational(fmt_num(node.value)) if node.value is not None else sympy.Integer(0)

    def variable(self, node: Node):
        name = node.variable or "x"
        return self.bindings.get(name, Symbol(name))

    def binary(self, node: Node, left, right):
        if node.type is NodeType.ADD:
            return left + right
        if node.type is NodeType.SUBTRACT:
            return left - right
        if node.type is NodeType.MULTIPLY:
            return left * right
        if node.type is NodeType.DIVIDE:
            return left / right
        return _power(left, right)

    def degraded(self, node: Node):
        return None


# ── Core walk ───────────────────────────────────────────────────────────

def _walk(graph: Graph, sink: Node, emitter):
    """Fold the sub-graph feeding *sink* through *emitter*.

    Post-order over an explicit stack, so depth is bounded by memory rather
    than the interpreter's recursion limit.  Returns ``(value,
    degraded_node_ids)``; ``value`` is ``None`` when the sink input is not
    connected.
    """
    memo: dict = {}
    path: list[str] = []
    on_path: set[str] = set()
    degraded: list[str] = []

    def producer_of(port_id: str) -> Optional[Node]:
        conn = graph.incoming(port_id)
        return graph.node_for_port(conn.source) if conn else None

    first = producer_of(sink.inputs[0].id) if sink.inputs else None
    if first is None:
        return None, ()

    # (node, operands); operands is None until the node has been expanded.
    stack = [(first, None)]
    while stack:
        node, operands = stack.pop()
        if operands is not None:
            path.pop()
            on_path.discard(node.id)
            left, right = operands
            memo[node.id] = emitter.binary(node, memo[left.id], memo[right.id])
            continue
        if node.id in on_path:
            raise CyclicGraphError(node.id, tuple(path))
        if node.id in memo:
            continue
        if node.type is NodeType.NUMBER:
            memo[node.id] = emitter.number(node)
        elif node.type is NodeType.VARIABLE:
            memo[node.id] = emitter.variable(node)
        elif node.type in BINARY_TYPES:
            left, right = (producer_of(p.id) for p in node.inputs)
            if left is None or right is None:
                degraded.append(node.id)
                memo[node.id] = emitter.degraded(node)
            else:
                on_path.add(node.id)
                path.append(node.id)
                stack.append((node, (left, right)))
                stack.append((right, None))
                stack.append((left, None))
        else:
            # Output nodes have no output port, so they never feed anything.
            degraded.append(node.id)
            memo[node.id] = emitter.degraded(node)
    return memo[first.id], tuple(degraded)


# ── Public API ──────────────────────────────────────────────────────────

def synthesize_detailed(graph: Graph, sink_id: Optional[str] = None) -> SynthesisResult:
    sink = _resolve_sink(graph, sink_id)
    if sink is None:
        return SynthesisResult("", None, False)
    text, degraded = _walk(graph, sink, _TextEmitter())
    if text is None:
        return SynthesisResult("", sink.id, False)
    logger.debug("Synthesized %s from sink %s", text, sink.id)
    return SynthesisResult(text, sink.id, not degraded, degraded)


def synthesize(graph: Graph, sink_id: Optional[str] = None) -> str:
    """Return the expression wired into the sink, or ``""`` if there is none.

    Raises ``CyclicGraphError`` when a node feeds itself, directly or not.
    """
    return synthesize_detailed(graph, sink_id).expression


def _build(graph: Graph, sink_id: Optional[str], bindings: Optional[dict] = None):
    sink = _resolve_sink(graph, sink_id)
    if sink is None:
        return None
    expr, degraded = _walk(graph, sink, _SympyEmitter(bindings))
    if expr is None or degraded:
        return None
    return expr


def to_sympy(graph: Graph, sink_id: Optional[str] = None):
    """SymPy expression for the graph, or ``None`` while it is incomplete.

    Raises ``ValueError`` for a power too large to build exactly.
    """
    return _build(graph, sink_id)


def _require_expr(graph: Graph, sink_id: Optional[str], bindings: Optional[dict] = None):
    expr = _build(graph, sink_id, bindings)
    if expr is None:
        raise ValueError("The graph is incomplete; connect every input to the output first.")
    return expr


def _format_expr(expr) -> str:
    return str(expr).replace("**", "^")


def simplified(graph: Graph, sink_id: Optional[str] = None) -> str:
    """Simplified form of the wired expression (``^`` for powers)."""
    expr = sympy.simplify(_require_expr(graph, sink_id))
    if expr.has(sympy.zoo, sympy.nan):
        raise ValueError("Expression divides by zero.")
    return _format_expr(expr)


def _check_bindings(graph: Graph, bindings: dict) -> None:
    for node in graph.nodes_of_type(NodeType.VARIABLE):
        name = node.variable or "x"
        if name in bindings:
            graph.constraints.check(node.id, validate_number(bindings[name]))


def evaluate(graph: Graph, bindings: Optional[dict] = None, sink_id: Optional[str] = None) -> float:
    """Evaluate the wired expression with *bindings* for its variables.

    Bound values must meet the constraints on their variable nodes.
    """
    bindings = bindings or {}
    _check_bindings(graph, bindings)
    value = _require_expr(graph, sink_id, bindings)
    missing = sorted(s.name for s in value.free_symbols)
    if missing:
        raise ValueError(f"No value given for: {', '.join(missing)}")
    if value.has(sympy.zoo, sympy.nan) or not value.is_finite:
        raise ValueError("Expression divides by zero.")
    if not value.is_real:
        raise ValueError(f"Expression has no real value ({value}).")
    try:
        return float(value)
    except OverflowError:
        raise ValueError("Result is too large to represent.") from None


def validate(graph: Graph, sink_id: Optional[str] = None) -> GraphReport:
    """Collect everything that keeps the graph from forming a full expression."""
    errors: list[str] = []
    warnings: list[str] = []

    sinks = find_sinks(graph)
    if sink_id is None and len(sinks) > 1:
        warnings.append(f"{len(sinks)} output nodes found; only the first is used")
        sink_id = sinks[0].id
    try:
        result = synthesize_detailed(graph, sink_id)
    except CyclicGraphError as exc:
        errors.append(f"Equation contains circular references ({exc.node_id})")
        return GraphReport(False, tuple(errors), tuple(warnings))

    if result.sink_id is None:
        errors.append("Add an OUTPUT node to generate equations")
    elif not result.expression:
        errors.append("The OUTPUT node has no input")
    for node_id in result.degraded_nodes:
        errors.append(f"Node '{node_id}' has unconnected inputs")

    for node in graph.nodes_of_type(NodeType.NUMBER):
        if node.value is None:
            continue
        check = graph.constraints.validate_value(node.id, node.value)
        if not check.is_valid:
            rules = ", ".join(v.description for v in check.violations)
            errors.append(f"Node '{node.id}' value {fmt_num(node.value)} violates: {rules}")

    for node in graph.nodes_of_type(NodeType.DIVIDE):
        conn = graph.incoming(node.inputs[1].id)
        divisor = graph.node_for_port(conn.source) if conn else None
        if divisor is not None and divisor.type is NodeType.NUMBER and divisor.value == 0:
            warnings.append(f"Node '{node.id}' divides by zero")

    return GraphReport(not errors, tuple(errors), tuple(warnings))
