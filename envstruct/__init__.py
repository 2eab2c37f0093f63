"""envstruct: populate dataclass / pydantic schemas from environment variables."""

import logging

from envstruct.base import load_config, resolve
from envstruct.coercion import TypeTag
from envstruct.errors import (
    ConversionError,
    EmptyVariableNameError,
    EnvParseError,
    InvalidTypeAliasError,
    MalformedTargetError,
    RequiredValueMissingError,
    SingleUnitArityError,
    UnknownOptionError,
    UnsupportedFieldTypeError,
)
from envstruct.lookup import dotenv_lookup, environ_lookup, mapping_lookup
from envstruct.tags import DEFAULT_SEPARATOR, Env
from envstruct.types import (
    Byte,
    Float32,
    Float64,
    Int,
    Int8,
    Int16,
    Int32,
    Int64,
    Rune,
    Uint,
    Uint8,
    Uint16,
    Uint32,
    Uint64,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "resolve",
    "load_config",
    "Env",
    "DEFAULT_SEPARATOR",
    "TypeTag",
    "environ_lookup",
    "mapping_lookup",
    "dotenv_lookup",
    "EnvParseError",
    "MalformedTargetError",
    "EmptyVariableNameError",
    "UnknownOptionError",
    "InvalidTypeAliasError",
    "RequiredValueMissingError",
    "ConversionError",
    "SingleUnitArityError",
    "UnsupportedFieldTypeError",
    "Int",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "Uint",
    "Uint8",
    "Uint16",
    "Uint32",
    "Uint64",
    "Float32",
    "Float64",
    "Byte",
    "Rune",
]
