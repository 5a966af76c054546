import pydantic
from packaging.version import parse
from pydantic.version import VERSION

version_parsed = parse(str(VERSION))

PydanticVersion = 2 if version_parsed.major >= 2 else 1


BaseModel: type = pydantic.BaseModel
Field: type = pydantic.Field
ValidationError: type = pydantic.ValidationError


# Pydantic V1: validator(pre=True); Pydantic V2: field_validator(mode="before")
def before_validator(*fields: str):
    if PydanticVersion == 1:
        return pydantic.validator(*fields, pre=True, allow_reuse=True)
    return pydantic.field_validator(*fields, mode="before")


# Pydantic V1: __fields__; Pydantic V2: model_fields
def get_model_fields(cls: type) -> dict:
    if PydanticVersion == 1:
        return getattr(cls, "__fields__", {})
    return getattr(cls, "model_fields", {})  # type: ignore[attr-defined]


def model_dump_compat(instance, **kwargs) -> dict:
    if PydanticVersion == 1:
        return instance.dict(**kwargs)
    return instance.model_dump(**kwargs)


def model_copy_compat(instance, update: dict = None, deep: bool = False):
    """Copy a model, replacing the given attributes (by field name)."""
    if PydanticVersion == 1:
        return instance.copy(update=update, deep=deep)
    return instance.model_copy(update=update, deep=deep)


def model_validate_compat(cls, data: dict):
    if PydanticVersion == 1:
        return cls.parse_obj(data)
    return cls.model_validate(data)


__all__ = [
    "BaseModel",
    "Field",
    "ValidationError",
    "before_validator",
    "get_model_fields",
    "model_dump_compat",
    "model_copy_compat",
    "model_validate_compat",
    "PydanticVersion",
]
