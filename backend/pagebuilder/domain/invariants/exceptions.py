class BuilderError(Exception):
    """Base class for every error raised by the document engine."""

    kind = "BuilderError"

    def to_dict(self):
        return {"error": self.kind, "message": str(self)}


class InvariantViolation(BuilderError):
    kind = "InvariantViolation"


class NodeNotFound(BuilderError):
    kind = "NodeNotFound"

    def __init__(self, node_id):
        super().__init__(f"Node not found: {node_id}")
        self.node_id = node_id


class ParentNotFound(BuilderError):
    kind = "ParentNotFound"

    def __init__(self, parent_id):
        super().__init__(f"Parent not found: {parent_id}")
        self.parent_id = parent_id


class InvalidChildForVariant(BuilderError):
    kind = "InvalidChildForVariant"


class UnknownBlockType(BuilderError):
    """
    Raised when a block type tag is not in the registry.

    Only fatal when creating blocks. Rendering degrades to a placeholder.
    """

    kind = "UnknownBlockType"

    def __init__(self, block_type):
        super().__init__(f"Unknown block type: {block_type}")
        self.block_type = block_type
