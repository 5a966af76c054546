from typing import Any, NamedTuple, Optional, Tuple

from .enums import BatchOperation, OrderByDirection


class FieldChange(NamedTuple):
    """One field-level mutation inside an atomic batch."""

    op: BatchOperation
    field: Tuple[str, ...]
    value: Any = None


class FirestoreField:
    """
    Lightweight *descriptor* that allows class-level attribute access
    to build orderings and field mutations.

    Examples
    --------
    >>> Post.created_at.desc()
    (createdAt, <OrderByDirection.DESCENDING: 'DESCENDING'>)
    >>> Post.up_votes.increment(1)
    FieldChange(op=<BatchOperation.INCREMENT: 'increment'>, field=('upVotes',), value=1)
    >>> Post.voters.child("uid-1").delete()
    FieldChange(op=<BatchOperation.DELETE: 'delete'>, field=('voters', 'uid-1'), value=None)

    When accessed on an **instance** the real value is returned, while a
    class-level access yields the descriptor.
    """

    def __init__(self, field_name: str, attr_name: Optional[str] = None, parts: Tuple[str, ...] = None):
        self.field_name = field_name
        self.attr_name = attr_name or field_name
        # Map keys may contain dots, so nested paths are kept as segments.
        self.parts = parts or (field_name,)

    # ------------------------------------------------------------------ #
    # Descriptor protocol                                                #
    # ------------------------------------------------------------------ #

    def __get__(self, instance, owner):
        """
        Instance access → return the actual value.
        Class access   → return *self*.
        """
        if instance is None:
            return self
        return instance.__dict__.get(self.attr_name)

    def __str__(self) -> str:          # noqa: DunderStr
        return self.field_name

    __repr__ = __str__

    def __hash__(self) -> int:         # noqa: DunderHash
        return hash(self.parts)

    # ------------------------------------------------------------------ #
    # Ordering                                                           #
    # ------------------------------------------------------------------ #

    def asc(self) -> Tuple["FirestoreField", OrderByDirection]:
        return (self, OrderByDirection.ASCENDING)

    def desc(self) -> Tuple["FirestoreField", OrderByDirection]:
        return (self, OrderByDirection.DESCENDING)

    # ------------------------------------------------------------------ #
    # Mutations                                                          #
    # ------------------------------------------------------------------ #

    def child(self, key: str) -> "FirestoreField":
        """Address one entry of a map field, e.g. ``voters.<uid>``."""
        return FirestoreField(
            f"{self.field_name}.{key}",
            attr_name=self.attr_name,
            parts=self.parts + (key,),
        )

    def set(self, value: Any) -> FieldChange:
        return FieldChange(BatchOperation.SET, self.parts, value)

    def increment(self, delta: int) -> FieldChange:
        return FieldChange(BatchOperation.INCREMENT, self.parts, delta)

    def delete(self) -> FieldChange:
        return FieldChange(BatchOperation.DELETE, self.parts)
