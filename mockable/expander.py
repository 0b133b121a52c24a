"""Expand @mockable declarations and mock() construction calls in a module."""

import ast
import logging
from dataclasses import dataclass
from pathlib import Path

from mockable.diagnostics import GenerationError, NoTypeSpecified
from mockable.interface_parser import (
    find_mockable_declarations,
    parse_declaration,
    read_when_argument,
)
from mockable.stub_generator import RUNTIME_ALIAS
from mockable.synthesizer import mock_class_name, synthesize

logger = logging.getLogger(__name__)

CONSTRUCTOR = "mock"
RUNTIME_IMPORT = f"import mockable.runtime as {RUNTIME_ALIAS}\n"


@dataclass
class Edit:
    """Replace the bytes in [start, end) with text."""

    start: int
    end: int
    text: str


def _line_starts(data: bytes) -> list[int]:
    """Byte offset at which each line starts, plus one past the end."""
    starts = [0]
    for index, byte in enumerate(data):
        if byte == 0x0A:
            starts.append(index + 1)
    if starts[-1] != len(data):
        starts.append(len(data))
    return starts


class _SourceMap:
    """Convert AST positions (1-based lines, UTF-8 byte columns) to offsets."""

    def __init__(self, data: bytes):
        self.data = data
        self._starts = _line_starts(data)

    def line_start(self, lineno: int) -> int:
        if lineno - 1 >= len(self._starts):
            return len(self.data)
        return self._starts[lineno - 1]

    def offset(self, lineno: int, col_offset: int) -> int:
        return self.line_start(lineno) + col_offset


def _is_construction_call(node: ast.AST) -> bool:
    if not isinstance(node, ast.Call):
        return False
    func = node.func
    if isinstance(func, ast.Name):
        return func.id == CONSTRUCTOR
    return (
        isinstance(func, ast.Attribute)
        and func.attr == CONSTRUCTOR
        and isinstance(func.value, ast.Name)
        and func.value.id == "mockable"
    )


def _mock_type_expression(interface: ast.expr) -> str:
    if isinstance(interface, ast.Name):
        return mock_class_name(interface.id)
    if isinstance(interface, ast.Attribute):
        return f"{ast.unparse(interface.value)}.{mock_class_name(interface.attr)}"
    if isinstance(interface, ast.Subscript):
        return _mock_type_expression(interface.value)
    raise NoTypeSpecified(interface.lineno, interface.col_offset)


def expand_construction(call: ast.Call, source: str) -> str:
    """Expand one ``mock(Interface, v1, v2, ...)`` call.

    Args:
        call: The construction call node
        source: The source the node was parsed from

    Returns:
        ``_mockable_.Wrapper[Interface](instance=_Mock_Interface_(v1, v2, ...))``

    Raises:
        NoTypeSpecified: If the call names no interface
    """
    if not call.args or isinstance(call.args[0], ast.Starred):
        raise NoTypeSpecified(call.lineno, call.col_offset)
    interface = call.args[0]
    interface_text = ast.get_source_segment(source, interface) or ast.unparse(interface)
    values = [ast.get_source_segment(source, arg) or ast.unparse(arg) for arg in call.args[1:]]
    return (
        f"{RUNTIME_ALIAS}.Wrapper[{interface_text}]"
        f"(instance={_mock_type_expression(interface)}({', '.join(values)}))"
    )


def _import_anchor(tree: ast.Module) -> int | None:
    """Line before which the runtime import goes: after docstring and __future__."""
    for index, statement in enumerate(tree.body):
        if (
            index == 0
            and isinstance(statement, ast.Expr)
            and isinstance(statement.value, ast.Constant)
            and isinstance(statement.value.value, str)
        ):
            continue
        if isinstance(statement, ast.ImportFrom) and statement.module == "__future__":
            continue
        decorators = getattr(statement, "decorator_list", [])
        return min([statement.lineno] + [d.lineno for d in decorators])
    return None


def _outermost(calls: list[ast.Call]) -> list[ast.Call]:
    """Drop construction calls nested inside another one."""
    spans = [((c.lineno, c.col_offset), (c.end_lineno, c.end_col_offset)) for c in calls]
    kept = []
    for call, (start, end) in zip(calls, spans):
        nested = any(
            (s <= start and end <= e) and (s, e) != (start, end) for s, e in spans
        )
        if not nested:
            kept.append(call)
    return kept


def expand_source(source: str, filename: str = "<unknown>") -> str:
    """Expand every @mockable declaration and mock() call in a module.

    Decorators are consumed; enabled declarations get their mock class
    inserted right after them; construction calls are rewritten. All other
    text is left unchanged.

    Args:
        source: Module source code
        filename: Used in diagnostics

    Returns:
        The expanded module source

    Raises:
        GenerationError: For the first declaration or call that cannot be expanded
    """
    tree = ast.parse(source, filename=filename)
    data = source.encode("utf-8")
    source_map = _SourceMap(data)
    edits: list[Edit] = []
    generated = 0

    try:
        for node, decorator in find_mockable_declarations(tree):
            declaration = parse_declaration(node)
            mock_source = synthesize(declaration, enabled=read_when_argument(decorator))
            edits.append(
                Edit(
                    source_map.line_start(decorator.lineno),
                    source_map.line_start(decorator.end_lineno + 1),
                    "",
                )
            )
            if mock_source is None:
                continue
            position = source_map.line_start(node.end_lineno + 1)
            prefix = "" if data[:position].endswith(b"\n") else "\n"
            prefix += "\n\n" if declaration.col_offset == 0 else "\n"
            edits.append(Edit(position, position, prefix + mock_source))
            generated += 1

        calls = _outermost([n for n in ast.walk(tree) if _is_construction_call(n)])
        for call in calls:
            edits.append(
                Edit(
                    source_map.offset(call.lineno, call.col_offset),
                    source_map.offset(call.end_lineno, call.end_col_offset),
                    expand_construction(call, source),
                )
            )
    except GenerationError as e:
        e.filename = filename
        raise

    if (generated or calls) and RUNTIME_IMPORT.strip() not in source:
        anchor = _import_anchor(tree)
        position = source_map.line_start(anchor) if anchor is not None else len(data)
        edits.append(Edit(position, position, RUNTIME_IMPORT))

    for edit in sorted(edits, key=lambda e: (e.start, e.end), reverse=True):
        data = data[: edit.start] + edit.text.encode("utf-8") + data[edit.end :]

    logger.info(
        f"Expanded {filename}: {generated} mock classes, {len(calls)} construction calls"
    )
    return data.decode("utf-8")


def expand_file(path: Path) -> str:
    """Read a module from disk and expand it."""
    logger.info(f"Expanding {path}")
    return expand_source(path.read_text(), filename=str(path))
