"""Derive the canonical tracker key for a method."""

import ast
import logging

from mockable.diagnostics import SignatureCollision
from mockable.models import MethodMember, Parameter, ParameterKind

logger = logging.getLogger(__name__)

_KIND_PREFIX = {
    ParameterKind.VAR_POSITIONAL: "*",
    ParameterKind.VAR_KEYWORD: "**",
}


def type_name(annotation: str | None) -> str:
    """Render an annotation's source text as it appears in a signature.

    String annotations lose their quotes so that ``"Widget"`` and ``Widget``
    derive the same signature. A missing annotation renders as ``Any``.
    """
    if annotation is None:
        return "Any"
    try:
        node = ast.parse(annotation, mode="eval").body
    except SyntaxError:
        return annotation
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return annotation


def _parameter_type(parameter: Parameter) -> str:
    return _KIND_PREFIX.get(parameter.kind, "") + type_name(parameter.annotation)


def derive_signature(method: MethodMember) -> str:
    """Compute the signature string for a method.

    Args:
        method: The method declaration

    Returns:
        ``name(T1, T2)`` followed by `` -> R`` when the method returns a value
    """
    parameter_types = ", ".join(_parameter_type(p) for p in method.parameters)
    signature = f"{method.name}({parameter_types})"
    if method.returns_value:
        signature += f" -> {type_name(method.return_annotation)}"
    return signature


def derive_signatures(methods: tuple[MethodMember, ...] | list[MethodMember]) -> list[str]:
    """Derive the signatures of all methods in declaration order.

    Raises:
        SignatureCollision: If two methods derive the same signature
    """
    signatures: list[str] = []
    for method in methods:
        signature = derive_signature(method)
        if signature in signatures:
            raise SignatureCollision(signature, method.lineno)
        signatures.append(signature)
        logger.debug(f"Derived signature: {signature}")
    return signatures
