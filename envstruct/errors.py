"""
Error types raised while resolving a schema from the environment.
Every failure is terminal: the first one aborts the whole resolution.
"""


class EnvParseError(Exception):
    """Base error. Renders as "<variable_name>: <message>" when a name is known."""

    def __init__(self, message: str, variable_name: str | None = None):
        self.message = message
        self.variable_name = variable_name
        if variable_name:
            super().__init__(f"{variable_name}: {message}")
        else:
            super().__init__(message)


class MalformedTargetError(EnvParseError):
    """Target is not a dataclass / pydantic model (instance or class, per entry point)."""


class EmptyVariableNameError(EnvParseError):
    def __init__(self):
        super().__init__("env variable name cannot be empty")


class UnknownOptionError(EnvParseError):
    def __init__(self, variable_name: str, token: str):
        self.token = token
        super().__init__(f"unknown option {token}", variable_name)


class InvalidTypeAliasError(EnvParseError):
    """Raised for a `type=` literal other than byte/rune, or one applied to the wrong field width."""

    def __init__(self, variable_name: str, message: str, token: str | None = None):
        self.token = token
        super().__init__(message, variable_name)


class RequiredValueMissingError(EnvParseError):
    def __init__(self, variable_name: str):
        super().__init__("value is required but was empty", variable_name)


class ConversionError(EnvParseError):
    """The coercion table rejected the raw value. The converter's message is kept as-is."""


class SingleUnitArityError(EnvParseError):
    """A byte/rune field got zero or several units."""


class UnsupportedFieldTypeError(EnvParseError):
    """The declared field type has no entry in the coercion table."""

    def __init__(self, variable_name: str, field_type: object):
        self.field_type = field_type
        super().__init__(f"unsupported field type {field_type!r}", variable_name)
