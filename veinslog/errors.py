"""Exceptions surfaced to callers of the engine."""


class NodeNotFoundError(LookupError):
    """Raised when a node's certificate-store directory does not exist."""

    def __init__(self, node_id: str, path: str):
        super().__init__(f"Node {node_id} not found (expected directory {path})")
        self.node_id = node_id
        self.path = path
