"""Shared fixtures for mockable tests."""

import ast
import textwrap

import pytest

import mockable.runtime
from mockable.interface_parser import parse_declaration
from mockable.synthesizer import synthesize


def parse_class(source: str):
    """Parse the first interface class of a snippet (else its first class)."""
    tree = ast.parse(textwrap.dedent(source))
    declarations = [parse_declaration(n) for n in tree.body if isinstance(n, ast.ClassDef)]
    return next((d for d in declarations if d.is_interface), declarations[0])


@pytest.fixture
def compile_mock():
    """Synthesize a mock for an interface snippet and execute both.

    Returns a function taking interface source and returning the namespace
    the interface and its mock were executed in.
    """

    def _compile(source: str) -> dict:
        source = textwrap.dedent(source)
        generated = synthesize(parse_class(source))
        namespace = {"_mockable_": mockable.runtime}
        exec(compile(source + "\n\n" + generated, "<generated>", "exec"), namespace)
        return namespace

    return _compile
