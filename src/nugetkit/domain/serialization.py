"""document (msgpack) and text (json) forms of the domain models."""
from datetime import datetime
from typing import Type, TypeVar

import msgpack
from pydantic import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)


def _encode_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"cannot serialize object of type {type(value).__name__}")


def to_document(model: BaseModel) -> bytes:
    """encode a model as a msgpack document."""
    return msgpack.packb(model.model_dump(mode="python"), default=_encode_default, use_bin_type=True)


def from_document(model_cls: Type[ModelT], data: bytes) -> ModelT:
    """decode a msgpack document produced by to_document."""
    return model_cls.model_validate(msgpack.unpackb(data, raw=False))


def to_text(model: BaseModel) -> str:
    """encode a model as json, with bytes fields in base64."""
    return model.model_dump_json()


def from_text(model_cls: Type[ModelT], text: str) -> ModelT:
    return model_cls.model_validate_json(text)
