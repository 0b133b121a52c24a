"""Import-time mock synthesis and runtime construction.

``@mockable`` runs the same synthesizer as the ``mockable generate`` command,
but at import time: the mock class is compiled into the module that declares
the interface, so tests can use it without a separate build step::

    @mockable
    class Greeter(Protocol):
        name: str

        def greet(self, other: str) -> str: ...

    greeter = mock(Greeter, "alice")
    greeter.function("greet(str) -> str").returns("hi bob")
"""

import ast
import inspect
import logging
import sys
import textwrap
import weakref
from abc import ABCMeta
from typing import Any, TypeVar

import mockable.runtime as runtime
from mockable.diagnostics import NoTypeSpecified, NotAnInterface, SourceUnavailable
from mockable.interface_parser import parse_declaration
from mockable.runtime import MockFatalError, Wrapper
from mockable.stub_generator import RUNTIME_ALIAS
from mockable.synthesizer import mock_class_name, synthesize

logger = logging.getLogger(__name__)

T = TypeVar("T")

_mock_types: "weakref.WeakKeyDictionary[type, type]" = weakref.WeakKeyDictionary()


def _declaration_node(declaration: Any) -> ast.AST:
    try:
        source = inspect.getsource(declaration)
    except (OSError, TypeError) as e:
        raise SourceUnavailable(
            f"Cannot read the source of {getattr(declaration, '__qualname__', declaration)!r}: {e}"
        ) from e
    tree = ast.parse(textwrap.dedent(source))
    return tree.body[0]


def _compile_mock(interface: type, source: str) -> type:
    """Execute generated class source in the interface's module."""
    module = sys.modules.get(interface.__module__)
    module_globals = vars(module) if module is not None else {}
    # Stubs resolve return types and the runtime alias in the live module
    # globals when called, so both must be reachable from there.
    module_globals.setdefault(RUNTIME_ALIAS, runtime)

    code = compile(
        "from __future__ import annotations\n" + textwrap.dedent(source),
        inspect.getsourcefile(interface) or "<mockable>",
        "exec",
    )
    namespace = {interface.__name__: interface}
    exec(code, module_globals, namespace)

    class_name = mock_class_name(interface.__name__)
    mock_type = namespace[class_name]
    module_globals[class_name] = mock_type
    return mock_type


def mockable(declaration: Any = None, /, *, when: bool = True) -> Any:
    """Mark a protocol as mockable and synthesize its mock class.

    Usable bare (``@mockable``) or configured (``@mockable(when=TESTING)``).
    With ``when`` false the declaration is returned untouched and no mock
    class exists.

    Raises:
        NotAnInterface: If applied to anything but a protocol or ABC
        SourceUnavailable: If the class source cannot be read
    """

    def decorate(target: Any) -> Any:
        if not isinstance(target, ABCMeta):
            raise NotAnInterface(getattr(target, "__qualname__", repr(target)))
        parsed = parse_declaration(_declaration_node(target))
        source = synthesize(parsed, enabled=when)
        if source is None:
            return target
        _mock_types[target] = _compile_mock(target, source)
        logger.info(f"Synthesized {mock_class_name(target.__name__)} for {target.__qualname__}")
        return target

    if declaration is None:
        return decorate
    return decorate(declaration)


def mock_type_for(interface: type) -> type:
    """Find the synthesized mock class of an interface.

    Raises:
        MockFatalError: If the interface has no synthesized mock
    """
    mock_type = _mock_types.get(interface)
    if mock_type is not None:
        return mock_type
    module = sys.modules.get(interface.__module__)
    mock_type = getattr(module, mock_class_name(interface.__name__), None)
    if mock_type is None:
        raise MockFatalError(f"{interface.__qualname__} has no mock: is it @mockable?")
    return mock_type


def mock(interface: type[T] | None = None, /, *initialized_with: Any) -> Wrapper[T]:
    """Construct a mock of ``interface`` and wrap it.

    Args:
        interface: The @mockable protocol
        initialized_with: Property values, in property declaration order

    Returns:
        A Wrapper around the new mock instance

    Raises:
        NoTypeSpecified: If no interface is given
    """
    if interface is None:
        raise NoTypeSpecified()
    return Wrapper(mock_type_for(interface)(*initialized_with))
