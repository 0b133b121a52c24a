"""Synthesize the source of a mock class from an interface declaration."""

import logging
from collections import defaultdict

from mockable.diagnostics import NotAnInterface, UnsupportedMember
from mockable.models import InterfaceDeclaration, MethodMember
from mockable.signature import derive_signatures
from mockable.stub_generator import RUNTIME_ALIAS, TRACKER_FIELD, generate_body

logger = logging.getLogger(__name__)

INDENT = "    "


def mock_class_name(interface_name: str) -> str:
    """Name of the class generated for an interface."""
    return f"_Mock_{interface_name}_"


def overload_stub_name(method_name: str, index: int) -> str:
    """Name of the stub generated for one overload of a method."""
    return f"_mock_{method_name}_{index}_"


def _indent(lines: list[str], depth: int = 1) -> list[str]:
    prefix = INDENT * depth
    return [prefix + line if line else line for line in lines]


def _method_header(method: MethodMember, name: str | None = None) -> str:
    returns = f" -> {method.return_annotation}" if method.return_annotation is not None else ""
    return f"def {name or method.name}{method.type_params}({method.parameters_source}){returns}:"


def _stub(method: MethodMember, signature: str, name: str | None = None) -> list[str]:
    lines = [f"@{decorator}" for decorator in method.decorators]
    lines.append(_method_header(method, name))
    lines.extend(_indent(generate_body(method, signature)))
    return lines


def _dispatcher(name: str, overloads: list[tuple[int, MethodMember, str]]) -> list[str]:
    candidates = [
        f"({signature!r}, self.{overload_stub_name(name, index)})"
        for index, _, signature in overloads
    ]
    return [
        f"def {name}(self, *args, **kwargs):",
        f"{INDENT}overload = {RUNTIME_ALIAS}.resolve_overload(",
        f"{INDENT * 2}self.{TRACKER_FIELD},",
        f"{INDENT * 2}{name!r},",
        f"{INDENT * 2}[{', '.join(candidates)}],",
        f"{INDENT * 2}args,",
        f"{INDENT * 2}kwargs,",
        f"{INDENT})",
        f"{INDENT}return overload(*args, **kwargs)",
    ]


def _constructor(declaration: InterfaceDeclaration, signatures: list[str]) -> list[str]:
    parameters = ["self"] + [f"{p.name}: {p.annotation}" for p in declaration.properties]
    if declaration.properties:
        parameters.append("/")
    signature_list = ", ".join(repr(s) for s in signatures)
    lines = [
        f"def __init__({', '.join(parameters)}) -> None:",
        f"{INDENT}self.{TRACKER_FIELD} = {RUNTIME_ALIAS}.Tracker(function_signatures=[{signature_list}])",
    ]
    lines.extend(f"{INDENT}self.{p.name} = {p.name}" for p in declaration.properties)
    return lines


def synthesize(declaration: InterfaceDeclaration, enabled: bool = True) -> str | None:
    """Generate the source of the mock class for an interface.

    The class is named by :func:`mock_class_name`, derives from the interface
    and from ``MockTrackable``, and lays out its body as: tracker field,
    properties, constructor, one stub per method.

    Args:
        declaration: The parsed interface
        enabled: When False nothing is generated

    Returns:
        Class source indented to the declaration's column, or None when disabled

    Raises:
        NotAnInterface: If the declaration is not a protocol or ABC
        UnsupportedMember: If a member cannot be given a tracking stub
        SignatureCollision: If two methods derive the same signature
    """
    if not declaration.is_interface:
        raise NotAnInterface(declaration.name, declaration.lineno, declaration.col_offset)
    if not enabled:
        logger.info(f"Mock generation disabled for {declaration.name}")
        return None
    for member, reason, lineno in declaration.unsupported:
        raise UnsupportedMember(f"{declaration.name}.{member}", reason, lineno)

    signatures = derive_signatures(declaration.methods)
    class_name = mock_class_name(declaration.name)

    slots = [TRACKER_FIELD] + [p.name for p in declaration.properties]
    body = [
        f"__slots__ = {tuple(slots)!r}",
        f"{TRACKER_FIELD}: {RUNTIME_ALIAS}.Tracker",
    ]
    body.extend(f"{p.name}: {p.annotation}" for p in declaration.properties)
    body.append("")
    body.extend(_constructor(declaration, signatures))

    groups: dict[str, list[tuple[int, MethodMember, str]]] = defaultdict(list)
    for method, signature in zip(declaration.methods, signatures):
        group = groups[method.name]
        group.append((len(group), method, signature))

    for method, signature in zip(declaration.methods, signatures):
        overloads = groups[method.name]
        body.append("")
        if len(overloads) == 1:
            body.extend(_stub(method, signature))
            continue
        index = next(i for i, m, _ in overloads if m is method)
        body.extend(_stub(method, signature, overload_stub_name(method.name, index)))
        if index == len(overloads) - 1:
            body.append("")
            body.extend(_dispatcher(method.name, overloads))

    lines = [f"class {class_name}({declaration.name}, {RUNTIME_ALIAS}.MockTrackable):"]
    lines.extend(_indent(body))
    indent = " " * declaration.col_offset
    source = "\n".join(indent + line if line else line for line in lines) + "\n"

    logger.info(
        f"Generated {class_name} with {len(declaration.properties)} properties "
        f"and {len(signatures)} tracked signatures"
    )
    return source
