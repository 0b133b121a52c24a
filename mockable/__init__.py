"""Tracking mocks for Python protocols."""

from mockable.api import mock, mock_type_for, mockable
from mockable.diagnostics import (
    GenerationError,
    NoTypeSpecified,
    NotAnInterface,
    SignatureCollision,
    SourceUnavailable,
    UnsupportedMember,
)
from mockable.expander import expand_construction, expand_file, expand_source
from mockable.interface_parser import parse_declaration, parse_file, parse_source
from mockable.models import (
    DeclarationKind,
    InterfaceDeclaration,
    MethodMember,
    Parameter,
    ParameterKind,
    PropertyMember,
)
from mockable.runtime import (
    UNSET,
    FunctionTrace,
    MockFatalError,
    MockTrackable,
    Tracker,
    Wrapper,
)
from mockable.signature import derive_signature, derive_signatures
from mockable.stub_generator import generate_body
from mockable.synthesizer import mock_class_name, synthesize

__all__ = [
    # Decorator and construction
    "mockable",
    "mock",
    "mock_type_for",
    # Runtime model
    "FunctionTrace",
    "Tracker",
    "Wrapper",
    "MockTrackable",
    "MockFatalError",
    "UNSET",
    # Models
    "DeclarationKind",
    "InterfaceDeclaration",
    "MethodMember",
    "Parameter",
    "ParameterKind",
    "PropertyMember",
    # Parsing
    "parse_declaration",
    "parse_source",
    "parse_file",
    # Generation
    "derive_signature",
    "derive_signatures",
    "generate_body",
    "mock_class_name",
    "synthesize",
    "expand_construction",
    "expand_source",
    "expand_file",
    # Diagnostics
    "GenerationError",
    "NotAnInterface",
    "NoTypeSpecified",
    "SignatureCollision",
    "UnsupportedMember",
    "SourceUnavailable",
]
