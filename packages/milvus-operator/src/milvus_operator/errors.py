"""
Exception classes for the reconcile engine.

Store errors (NotFoundError, StoreError) live in milvus_protocols.store
since every ObjectStoreProtocol implementation raises them. This module
holds the errors raised by the engine itself.
"""


class ReconcileError(Exception):
    """Base class for engine failures that abort a reconcile pass."""


class OwnerReferenceError(ReconcileError):
    """
    Raised when an owned object cannot point back at its Milvus CR.

    This is a topology error: the component's pass is aborted and
    retried on the next cycle.

    Attributes:
        owner: "namespace/name" of the Milvus CR
        obj: "namespace/name" of the owned object
        reason: Why the reference could not be set
    """

    def __init__(self, owner: str, obj: str, reason: str) -> None:
        self.owner = owner
        self.obj = obj
        self.reason = reason
        super().__init__(f"cannot set owner {owner} on {obj}: {reason}")


class DependencyGraphError(ReconcileError):
    """Raised when a rolling-update dependency table is not a DAG."""
