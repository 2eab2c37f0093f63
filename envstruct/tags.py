"""
Tag type for schema definitions and the parser for its annotation string.
Used inside Annotated[type, Env("NAME,opts")] to bind a field to a variable.

Annotation format: comma separated, the variable name first, then any of
    required       fail when the variable is empty (checked before default)
    default=X      value to use when the variable is empty
    separator=S    split character for list fields (default ",")
    type=byte|rune read a single character instead of a number
"""

from dataclasses import dataclass
from enum import Enum

from envstruct.errors import EmptyVariableNameError, InvalidTypeAliasError, UnknownOptionError

DEFAULT_SEPARATOR = ","


class TypeAlias(str, Enum):
    BYTE = "byte"
    RUNE = "rune"


class Env:
    """Bind a field to an environment variable: Env("PORT,default=8080")."""

    def __init__(self, annotation: str):
        self.annotation = annotation

    def __repr__(self) -> str:
        return f"Env({self.annotation!r})"


@dataclass(frozen=True)
class FieldDescriptor:
    """Parsed form of one field's annotation."""

    variable_name: str
    required: bool = False
    default_literal: str | None = None
    separator: str = DEFAULT_SEPARATOR
    type_alias: TypeAlias | None = None


def _option_value(token: str) -> str:
    """Value after the first "=", or "" when the token has none."""
    _, sep, value = token.partition("=")
    return value if sep else ""


def parse_annotation(annotation: str) -> FieldDescriptor:
    """
    Parse "NAME,opt,opt=value,..." into a FieldDescriptor.

    Raises EmptyVariableNameError, UnknownOptionError or InvalidTypeAliasError.
    Options are applied left to right; a repeated key overwrites the earlier one.
    """
    tokens = annotation.split(",")
    name = tokens[0]
    if not name:
        raise EmptyVariableNameError()

    required = False
    default_literal: str | None = None
    separator = DEFAULT_SEPARATOR
    type_alias: TypeAlias | None = None

    for token in tokens[1:]:
        key = token.partition("=")[0]
        if token == "required":
            required = True
        elif key == "default":
            default_literal = _option_value(token)
        elif key == "separator":
            separator = _option_value(token) or DEFAULT_SEPARATOR
        elif key == "type":
            literal = _option_value(token)
            if literal not in (TypeAlias.BYTE.value, TypeAlias.RUNE.value):
                raise InvalidTypeAliasError(
                    name,
                    f'invalid type "{token}", valid options are: "byte", "rune"',
                    token=token,
                )
            type_alias = TypeAlias(literal)
        else:
            raise UnknownOptionError(name, token)

    return FieldDescriptor(
        variable_name=name,
        required=required,
        default_literal=default_literal,
        separator=separator,
        type_alias=type_alias,
    )
