"""Data models for parsed interface declarations."""

from dataclasses import dataclass
from enum import Enum


class DeclarationKind(str, Enum):
    """What a decorated declaration turned out to be."""

    PROTOCOL = "protocol"
    ABC = "abc"
    CLASS = "class"
    FUNCTION = "function"


class ParameterKind(str, Enum):
    """How a parameter receives its argument."""

    POSITIONAL = "positional"
    VAR_POSITIONAL = "var_positional"
    KEYWORD_ONLY = "keyword_only"
    VAR_KEYWORD = "var_keyword"


@dataclass(frozen=True)
class Parameter:
    """A method parameter, receiver excluded."""

    name: str
    annotation: str | None  # source text, e.g. "list[int]" or "'Widget'"
    kind: ParameterKind = ParameterKind.POSITIONAL


@dataclass(frozen=True)
class PropertyMember:
    """A property declared on an interface."""

    name: str
    annotation: str
    read_only: bool = False


@dataclass(frozen=True)
class MethodMember:
    """A method declared on an interface."""

    name: str
    parameters: tuple[Parameter, ...] = ()
    parameters_source: str = "self"  # full parameter list, receiver included
    receiver: str = "self"
    return_annotation: str | None = None
    type_params: str = ""  # e.g. "[T]"
    decorators: tuple[str, ...] = ()
    lineno: int = 0

    @property
    def returns_value(self) -> bool:
        """True if the method declares a return type."""
        return self.return_annotation not in (None, "None")


@dataclass(frozen=True)
class InterfaceDeclaration:
    """A parsed declaration that may be mocked."""

    name: str
    kind: DeclarationKind
    properties: tuple[PropertyMember, ...] = ()
    methods: tuple[MethodMember, ...] = ()
    lineno: int = 0
    col_offset: int = 0
    unsupported: tuple[tuple[str, str, int], ...] = ()  # (member, reason, lineno)

    @property
    def is_interface(self) -> bool:
        return self.kind in (DeclarationKind.PROTOCOL, DeclarationKind.ABC)
