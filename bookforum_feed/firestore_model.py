import logging
from typing import Any, List, Optional, Tuple, Union

from google.cloud.firestore_v1.field_path import FieldPath

from .enums import OrderByDirection
from .firestore_fields import FirestoreField
from .pydantic_compat import (
    BaseModel,
    Field,
    PydanticVersion,
    get_model_fields,
    model_dump_compat,
    model_validate_compat,
)

# Alias for the first element in order-by tuple
FieldType = Union[str, FirestoreField]
# Alias for field ordering tuples
FieldOrderType = Tuple[FieldType, OrderByDirection]

logger = logging.getLogger(__name__)


class BaseFirestoreModel(BaseModel):
    """
    Pydantic base for documents read from and written to Firestore.

    Subclasses declare their collection in ``Settings.name``; a subcollection
    also declares ``Settings.parent`` (the model owning it), so that
    ``Comment.collection_path(post_id)`` resolves to ``posts/{post_id}/comments``.
    """

    # --------------------------------------------------------------------------
    # Default field (document ID)
    # --------------------------------------------------------------------------
    id: Optional[str] = Field(default=None)

    # --------------------------------------------------------------------------
    # Collection definition
    # --------------------------------------------------------------------------
    class Settings:
        name: str = "BaseCollection"  # Override in subclasses
        parent = None

    # --------------------------------------------------------------------------
    # Pydantic configuration
    # --------------------------------------------------------------------------
    if PydanticVersion >= 2:
        model_config = {"populate_by_name": True}
    else:
        class Config:
            allow_population_by_field_name = True

    @classmethod
    def initialize_fields(cls) -> None:
        """
        Replace every pydantic field on the class with a :class:`FirestoreField`
        named after the stored (aliased) field, so ``Post.up_votes`` becomes
        the ``upVotes`` descriptor.
        """
        for field_name, field_info in get_model_fields(cls).items():
            alias = (
                FieldPath.document_id() if field_name == "id"
                else (field_info.alias or field_name)  # type: ignore[attr-defined]
            )
            setattr(cls, field_name, FirestoreField(alias, attr_name=field_name))

    # --------------------------------------------------------------------------
    # Paths
    # --------------------------------------------------------------------------
    @classmethod
    def get_collection_name(cls) -> str:
        if hasattr(cls, "Settings") and hasattr(cls.Settings, "name"):
            return cls.Settings.name
        return cls.__name__

    @classmethod
    def get_parent_model(cls):
        return getattr(getattr(cls, "Settings", None), "parent", None)

    @classmethod
    def collection_path(cls, parent_id: Optional[str] = None) -> str:
        """
        Return the slash-separated collection path.

        Subcollection models require the id of their parent document.
        """
        parent = cls.get_parent_model()
        if parent is None:
            return cls.get_collection_name()
        if not parent_id:
            raise ValueError(
                f"{cls.__name__} is a subcollection of {parent.__name__} and requires a parent id."
            )
        return f"{parent.document_path(parent_id)}/{cls.get_collection_name()}"

    @classmethod
    def document_path(cls, doc_id: str, parent_id: Optional[str] = None) -> str:
        if not doc_id:
            raise ValueError(f"Cannot address a {cls.__name__} document without an ID.")
        return f"{cls.collection_path(parent_id)}/{doc_id}"

    @property
    def path(self) -> str:
        return self.document_path(self.id)

    # --------------------------------------------------------------------------
    # (De)serialization
    # --------------------------------------------------------------------------
    @classmethod
    def from_document(cls, doc_id: str, data: Optional[dict]) -> "BaseFirestoreModel":
        """Build an instance from a document id and its stored field map."""
        data = dict(data or {})
        data["id"] = doc_id
        return model_validate_compat(cls, data)

    def to_firestore(self) -> dict:
        return model_dump_compat(self, exclude={"id"}, by_alias=True, exclude_none=True)

    def cursor_values(self, order_by: List[FieldOrderType]) -> Tuple[Any, ...]:
        """Values of the ordering fields, in order, for resuming a query after this document."""
        values = []
        for field, _direction in order_by:
            attr_name = field.attr_name if isinstance(field, FirestoreField) else field
            values.append(getattr(self, attr_name))
        return tuple(values)
