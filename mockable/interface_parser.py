"""Parse Python source to extract @mockable interface declarations."""

import ast
import logging
from pathlib import Path

from mockable.models import (
    DeclarationKind,
    InterfaceDeclaration,
    MethodMember,
    Parameter,
    ParameterKind,
    PropertyMember,
)

logger = logging.getLogger(__name__)

MARKER = "mockable"

# Decorators that only matter to the interface, not to its stubs
_DROPPED_DECORATORS = {"abstractmethod", "overload"}
_UNSUPPORTED_DECORATORS = {"staticmethod", "classmethod"}
_UNSUPPORTED_METHODS = {"__init__", "__new__"}


def _tail_name(node: ast.expr) -> str | None:
    """Last dotted component of a decorator, base or annotation expression."""
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    if isinstance(node, ast.Call):
        return _tail_name(node.func)
    if isinstance(node, ast.Subscript):
        return _tail_name(node.value)
    return None


def is_mockable_decorator(decorator: ast.expr) -> bool:
    """True for ``@mockable``, ``@mockable(...)`` and ``@pkg.mockable``."""
    return _tail_name(decorator) == MARKER


def read_when_argument(decorator: ast.expr) -> bool:
    """Read the ``when`` configuration off a @mockable decorator.

    Only a literal false value disables generation; expressions that cannot be
    evaluated statically leave it enabled.
    """
    if not isinstance(decorator, ast.Call):
        return True
    for keyword in decorator.keywords:
        if keyword.arg != "when":
            continue
        try:
            return bool(ast.literal_eval(keyword.value))
        except ValueError:
            logger.debug(f"Non-literal when={ast.unparse(keyword.value)}, generating")
            return True
    return True


def find_mockable_declarations(
    tree: ast.Module,
) -> list[tuple[ast.ClassDef | ast.FunctionDef | ast.AsyncFunctionDef, ast.expr]]:
    """Find every declaration carrying a @mockable decorator.

    Returns:
        (declaration node, decorator node) pairs in source order
    """
    found = []
    for node in ast.walk(tree):
        if not isinstance(node, (ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)):
            continue
        for decorator in node.decorator_list:
            if is_mockable_decorator(decorator):
                found.append((node, decorator))
                break
    found.sort(key=lambda pair: (pair[0].lineno, pair[0].col_offset))
    return found


def _declaration_kind(node: ast.AST) -> DeclarationKind:
    if not isinstance(node, ast.ClassDef):
        return DeclarationKind.FUNCTION
    base_names = {_tail_name(base) for base in node.bases}
    if "Protocol" in base_names:
        return DeclarationKind.PROTOCOL
    metaclasses = {_tail_name(k.value) for k in node.keywords if k.arg == "metaclass"}
    if "ABC" in base_names or "ABCMeta" in metaclasses:
        return DeclarationKind.ABC
    return DeclarationKind.CLASS


def _parse_parameters(arguments: ast.arguments) -> tuple[Parameter, ...] | None:
    """Collect parameters after the receiver, or None if there is no receiver."""
    positional = arguments.posonlyargs + arguments.args
    if not positional:
        return None

    def annotation(arg: ast.arg) -> str | None:
        return ast.unparse(arg.annotation) if arg.annotation is not None else None

    parameters = [Parameter(a.arg, annotation(a)) for a in positional[1:]]
    if arguments.vararg is not None:
        parameters.append(
            Parameter(
                arguments.vararg.arg,
                annotation(arguments.vararg),
                ParameterKind.VAR_POSITIONAL,
            )
        )
    for arg in arguments.kwonlyargs:
        parameters.append(Parameter(arg.arg, annotation(arg), ParameterKind.KEYWORD_ONLY))
    if arguments.kwarg is not None:
        parameters.append(
            Parameter(
                arguments.kwarg.arg, annotation(arguments.kwarg), ParameterKind.VAR_KEYWORD
            )
        )
    return tuple(parameters)


def _parse_method(node: ast.FunctionDef) -> MethodMember | None:
    parameters = _parse_parameters(node.args)
    if parameters is None:
        return None
    type_params = getattr(node, "type_params", None) or []
    return MethodMember(
        name=node.name,
        parameters=parameters,
        parameters_source=ast.unparse(node.args),
        receiver=(node.args.posonlyargs + node.args.args)[0].arg,
        return_annotation=ast.unparse(node.returns) if node.returns is not None else None,
        type_params=f"[{', '.join(ast.unparse(tp) for tp in type_params)}]" if type_params else "",
        decorators=tuple(
            ast.unparse(d)
            for d in node.decorator_list
            if _tail_name(d) not in _DROPPED_DECORATORS
        ),
        lineno=node.lineno,
    )


def _parse_annotated_property(node: ast.AnnAssign) -> PropertyMember | None:
    if not isinstance(node.target, ast.Name):
        return None
    qualifier = _tail_name(node.annotation)
    if qualifier == "ClassVar":
        return None
    if qualifier == "Final":
        if isinstance(node.annotation, ast.Subscript):
            inner = ast.unparse(node.annotation.slice)
        else:
            inner = "object"
        return PropertyMember(node.target.id, inner, read_only=True)
    return PropertyMember(node.target.id, ast.unparse(node.annotation))


def parse_declaration(node: ast.AST) -> InterfaceDeclaration:
    """Parse a class or function node into a declaration.

    Non-class declarations and classes that are neither protocols nor ABCs are
    returned with their kind and no members; rejecting them is up to the
    synthesizer.

    Args:
        node: A ClassDef, FunctionDef or AsyncFunctionDef node

    Returns:
        The parsed InterfaceDeclaration
    """
    kind = _declaration_kind(node)
    if kind in (DeclarationKind.FUNCTION, DeclarationKind.CLASS):
        return InterfaceDeclaration(
            name=node.name, kind=kind, lineno=node.lineno, col_offset=node.col_offset
        )

    properties: dict[str, PropertyMember] = {}
    methods: list[MethodMember] = []
    unsupported: list[tuple[str, str, int]] = []

    for statement in node.body:
        if isinstance(statement, ast.AnnAssign):
            prop = _parse_annotated_property(statement)
            if prop is not None:
                properties[prop.name] = prop
        elif isinstance(statement, ast.AsyncFunctionDef):
            unsupported.append((statement.name, "async methods are not supported", statement.lineno))
        elif isinstance(statement, ast.FunctionDef):
            decorator_names = {_tail_name(d) for d in statement.decorator_list}
            accessor = _property_accessor(statement)
            if "property" in decorator_names:
                annotation = (
                    ast.unparse(statement.returns) if statement.returns is not None else "object"
                )
                properties[statement.name] = PropertyMember(statement.name, annotation, read_only=True)
            elif accessor == "setter" and statement.name in properties:
                properties[statement.name] = PropertyMember(
                    statement.name, properties[statement.name].annotation, read_only=False
                )
            elif accessor is not None:
                continue
            elif decorator_names & _UNSUPPORTED_DECORATORS:
                unsupported.append(
                    (statement.name, "static and class methods cannot be tracked", statement.lineno)
                )
            elif statement.name in _UNSUPPORTED_METHODS:
                unsupported.append(
                    (statement.name, "the mock defines its own constructor", statement.lineno)
                )
            else:
                method = _parse_method(statement)
                if method is None:
                    unsupported.append((statement.name, "missing self parameter", statement.lineno))
                else:
                    methods.append(method)

    declaration = InterfaceDeclaration(
        name=node.name,
        kind=kind,
        properties=tuple(properties.values()),
        methods=tuple(methods),
        lineno=node.lineno,
        col_offset=node.col_offset,
        unsupported=tuple(unsupported),
    )
    logger.debug(
        f"Parsed {kind.value} {node.name}: {len(declaration.properties)} properties, "
        f"{len(declaration.methods)} methods"
    )
    return declaration


def _property_accessor(node: ast.FunctionDef) -> str | None:
    """Return "setter"/"deleter" for ``@x.setter``-style accessors."""
    for decorator in node.decorator_list:
        if (
            isinstance(decorator, ast.Attribute)
            and isinstance(decorator.value, ast.Name)
            and decorator.value.id == node.name
            and decorator.attr in ("setter", "deleter")
        ):
            return decorator.attr
    return None


def parse_source(content: str, filename: str = "<unknown>") -> list[InterfaceDeclaration]:
    """Parse source text and extract every @mockable declaration.

    Args:
        content: Python source code
        filename: Used for syntax error reporting

    Returns:
        List of InterfaceDeclaration objects in source order
    """
    tree = ast.parse(content, filename=filename)
    declarations = [parse_declaration(node) for node, _ in find_mockable_declarations(tree)]
    logger.info(f"Found {len(declarations)} @mockable declarations in {filename}")
    return declarations


def parse_file(path: Path) -> list[InterfaceDeclaration]:
    """Parse a Python file and extract every @mockable declaration."""
    logger.info(f"Parsing interface declarations from {path}")
    return parse_source(path.read_text(), filename=str(path))
