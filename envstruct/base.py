"""
Reflection-based resolver.
Walks a schema's fields, reads each annotated variable, coerces it to the
field's declared type and assigns it. Nested un-annotated schemas are walked
with the same rules and share the flat variable namespace.
"""

import logging
import re
import types as _pytypes
from dataclasses import dataclass, fields, is_dataclass
from typing import Annotated, Any, Callable, Mapping, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel

from envstruct.coercion import TYPE_TAGS, ArityError, TypeTag, coerce, coerce_many
from envstruct.errors import (
    ConversionError,
    InvalidTypeAliasError,
    MalformedTargetError,
    RequiredValueMissingError,
    SingleUnitArityError,
    UnsupportedFieldTypeError,
)
from envstruct.lookup import Lookup, environ_lookup, mapping_lookup
from envstruct.tags import Env, FieldDescriptor, TypeAlias, parse_annotation

logger = logging.getLogger(__name__)

# dataclasses.field(metadata={METADATA_KEY: "NAME,opts"}) works like Annotated[..., Env(...)]
METADATA_KEY = "env"


@dataclass
class _Nested:
    """Resolved values of an un-annotated nested schema field."""

    schema_class: type
    values: dict[str, Any]


def _is_schema(typ: Any) -> bool:
    return isinstance(typ, type) and (is_dataclass(typ) or issubclass(typ, BaseModel))


def _is_optional(hint: Any) -> bool:
    """True if type is Optional[T] (Union[T, None] or T | None)."""
    origin = get_origin(hint)
    return origin in (Union, _pytypes.UnionType) and type(None) in get_args(hint)


def _unwrap_optional(hint: Any) -> Any:
    """Optional[T] -> T. Other unions are returned untouched."""
    if not _is_optional(hint):
        return hint
    args = [a for a in get_args(hint) if a is not type(None)]
    return args[0] if len(args) == 1 else hint


def _schema_fields(schema_class: type) -> list[tuple[str, Any, list[Any]]]:
    """(name, type, metadata) for each field, with Annotated[...] split apart."""
    if issubclass(schema_class, BaseModel):
        # pydantic strips Annotated and keeps unknown tags in FieldInfo.metadata
        return [
            (name, info.annotation, list(info.metadata))
            for name, info in schema_class.model_fields.items()
        ]

    try:
        hints = get_type_hints(schema_class, include_extras=True)
    except (NameError, TypeError) as err:
        raise MalformedTargetError(f"cannot read type hints of {schema_class.__name__}: {err}") from err

    result = []
    for f in fields(schema_class):
        hint = hints.get(f.name, f.type)
        metadata: list[Any] = []
        if get_origin(hint) is Annotated:
            args = get_args(hint)
            hint, metadata = args[0], list(args[1:])
        if f.metadata and METADATA_KEY in f.metadata:
            metadata.append(Env(f.metadata[METADATA_KEY]))
        result.append((f.name, hint, metadata))
    return result


def _field_annotation(metadata: list[Any]) -> str | None:
    for m in metadata:
        if isinstance(m, Env):
            return m.annotation
    return None


def _target_kind(descriptor: FieldDescriptor, hint: Any) -> tuple[TypeTag, bool]:
    """
    Map the declared type to (tag, is_collection), applying the type= alias.
    Raises UnsupportedFieldTypeError or InvalidTypeAliasError.
    """
    name = descriptor.variable_name
    element = _unwrap_optional(hint)
    collection = get_origin(element) is list
    if collection:
        args = get_args(element)
        element = args[0] if args else None
    if get_origin(element) is re.Pattern:
        element = re.Pattern

    try:
        tag = TYPE_TAGS.get(element)
    except TypeError:  # unhashable annotation
        tag = None
    if tag is None or (collection and tag == TypeTag.BYTES):
        raise UnsupportedFieldTypeError(name, hint)

    alias = descriptor.type_alias
    if alias is TypeAlias.BYTE:
        if tag == TypeTag.UINT8:
            tag = TypeTag.BYTE
        elif tag != TypeTag.BYTES:
            raise InvalidTypeAliasError(name, f'type "byte" requires an 8-bit unsigned field, got {hint!r}')
    elif alias is TypeAlias.RUNE:
        if tag == TypeTag.INT32:
            tag = TypeTag.RUNE
        else:
            raise InvalidTypeAliasError(name, f'type "rune" requires a 32-bit signed field, got {hint!r}')
    return tag, collection


def _convert(descriptor: FieldDescriptor, tag: TypeTag, collection: bool, raw: str) -> Any:
    name = descriptor.variable_name
    try:
        parts = raw.split(descriptor.separator)
        if tag == TypeTag.BYTES and descriptor.type_alias is TypeAlias.BYTE and len(parts) > 1:
            raise SingleUnitArityError("byte slice cannot have multiple values", name)
        if not collection:
            return coerce(tag, raw)

        if tag in (TypeTag.BYTE, TypeTag.RUNE):
            # the whole raw string is the sequence; a separator means several values
            if len(parts) > 1:
                raise SingleUnitArityError(f"{tag.value} slice cannot have multiple values", name)
            if tag == TypeTag.BYTE:
                return list(raw.encode("utf-8"))
            return [ord(c) for c in raw]
        return coerce_many(tag, parts)
    except ArityError as err:
        raise SingleUnitArityError(str(err), name) from err
    except ValueError as err:
        raise ConversionError(str(err), name) from err


def _resolve_field(annotation: str, hint: Any, lookup: Lookup) -> Any:
    descriptor = parse_annotation(annotation)
    tag, collection = _target_kind(descriptor, hint)

    raw = lookup(descriptor.variable_name)
    # required looks at the raw value, so a default never satisfies it
    if descriptor.required and raw == "":
        raise RequiredValueMissingError(descriptor.variable_name)
    if raw == "" and descriptor.default_literal is not None:
        logger.debug("%s is empty, using default %r", descriptor.variable_name, descriptor.default_literal)
        raw = descriptor.default_literal

    return _convert(descriptor, tag, collection, raw)


def _collect(schema_class: type, lookup: Lookup) -> dict[str, Any]:
    """Resolve every annotated field, depth first, in declaration order."""
    values: dict[str, Any] = {}
    for name, hint, metadata in _schema_fields(schema_class):
        annotation = _field_annotation(metadata)
        if annotation is None:
            nested = _unwrap_optional(hint)
            if _is_schema(nested):
                logger.debug("descending into %s.%s", schema_class.__name__, name)
                values[name] = _Nested(nested, _collect(nested, lookup))
            continue
        values[name] = _resolve_field(annotation, hint, lookup)
    return values


def _build(schema_class: type, values: dict[str, Any]) -> Any:
    """Construct a schema instance from resolved values; missing fields use their defaults."""
    resolved = {k: _build(v.schema_class, v.values) if isinstance(v, _Nested) else v for k, v in values.items()}
    if is_dataclass(schema_class):
        init_names = {f.name for f in fields(schema_class) if f.init}
    else:
        init_names = set(resolved)
    kwargs = {k: v for k, v in resolved.items() if k in init_names}
    try:
        instance = schema_class(**kwargs)
    except (TypeError, ValueError) as err:
        raise MalformedTargetError(f"cannot construct {schema_class.__name__}: {err}") from err
    for k, v in resolved.items():
        if k not in init_names:
            setattr(instance, k, v)
    return instance


def _check_mutable(target: Any) -> None:
    if is_dataclass(target) and target.__dataclass_params__.frozen:
        raise MalformedTargetError(f"{type(target).__name__} is frozen, use load_config instead")
    if isinstance(target, BaseModel) and target.model_config.get("frozen"):
        raise MalformedTargetError(f"{type(target).__name__} is frozen, use load_config instead")


def _plan(target: Any, values: dict[str, Any], assignments: list[tuple[Any, str, Any]]) -> None:
    """Turn resolved values into (object, attribute, value) assignments without touching the target."""
    _check_mutable(target)
    for name, value in values.items():
        if isinstance(value, _Nested):
            current = getattr(target, name, None)
            if isinstance(current, value.schema_class):
                _plan(current, value.values, assignments)
                continue
            value = _build(value.schema_class, value.values)
        assignments.append((target, name, value))


def _as_lookup(env: Mapping[str, str] | Callable[[str], str] | None) -> Lookup:
    if env is None:
        return environ_lookup
    if isinstance(env, Mapping):
        return mapping_lookup(env)
    if callable(env):
        return env
    raise TypeError(f"env must be a mapping or a callable, got {type(env).__name__}")


def resolve(target: Any, env: Mapping[str, str] | Callable[[str], str] | None = None) -> None:
    """
    Populate an existing schema instance from the environment.

    - target: a dataclass or pydantic model instance (zero-valued or partly filled)
    - env: mapping or lookup callable to read from (default: os.environ)
    - Raises: EnvParseError subclasses; on error the target is left unchanged
    """
    if isinstance(target, type) or not _is_schema(type(target)):
        raise MalformedTargetError("expected a dataclass or pydantic model instance")

    values = _collect(type(target), _as_lookup(env))
    assignments: list[tuple[Any, str, Any]] = []
    _plan(target, values, assignments)
    for obj, name, value in assignments:
        setattr(obj, name, value)
    logger.debug("resolved %d fields into %s", len(assignments), type(target).__name__)


def load_config(
    schema_class: type,
    env: Mapping[str, str] | Callable[[str], str] | None = None,
) -> Any:
    """
    Build a new schema instance from the environment.

    - schema_class: a dataclass or pydantic model class
    - env: mapping or lookup callable to read from (default: os.environ)
    - Returns: instance of schema_class with populated fields
    - Raises: EnvParseError subclasses
    """
    if not _is_schema(schema_class):
        raise MalformedTargetError("expected a dataclass or pydantic model class")
    return _build(schema_class, _collect(schema_class, _as_lookup(env)))
