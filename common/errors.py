"""
Error taxonomy shared by the graph builder, the tutor and the store.

Everything the user can trigger by bad input derives from ``ValueError`` so
adapters can map it to a 400-style response the same way the solver errors
always were.
"""


class SchemaError(ValueError):
    """Malformed node type, node edit, or equation-definition input."""


class GraphStructureError(ValueError):
    """A structural rule of the node graph was violated."""


class UnknownNodeType(GraphStructureError, SchemaError):
    """The requested node type is outside the closed set."""

    def __init__(self, node_type) -> None:
        self.node_type = node_type
        super().__init__(f"Unknown node type: {node_type!r}")


class InvalidConnection(GraphStructureError):
    """A connection would break the port direction / ownership rules."""


class CyclicGraphError(GraphStructureError):
    """Synthesis re-entered a node that is already on the active path."""

    def __init__(self, node_id: str, path: tuple = ()) -> None:
        self.node_id = node_id
        self.path = tuple(path)
        chain = " -> ".join(self.path + (node_id,)) if self.path else node_id
        super().__init__(f"Graph contains a cycle closed at node '{node_id}' ({chain})")


class InvalidSequence(SchemaError):
    """An equation definition cannot be played as a solving sequence."""


class StoreUnavailableError(OSError):
    """The persistence gateway could not read or write its backing file."""


class ConstraintViolation(SchemaError):
    """A value breaks one or more constraints attached to its node."""

    def __init__(self, target: str, violations: tuple) -> None:
        self.target = target
        self.violations = tuple(violations)
        rules = ", ".join(v.description for v in self.violations)
        super().__init__(f"Value for '{target}' violates: {rules}")


class ConstraintConflict(SchemaError):
    """A new constraint cannot hold together with the ones already attached."""

    def __init__(self, target: str, conflicts: tuple) -> None:
        self.target = target
        self.conflicts = tuple(conflicts)
        kinds = ", ".join(c.kind for c in self.conflicts)
        super().__init__(f"Constraint conflicts on '{target}': {kinds}")
