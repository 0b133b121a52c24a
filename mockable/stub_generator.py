"""Generate the tracking body of one mocked method."""

import ast
import logging

from mockable.models import MethodMember

logger = logging.getLogger(__name__)

RUNTIME_ALIAS = "_mockable_"
TRACKER_FIELD = "_mock_tracker_"


def _local_name(base: str, taken: set[str]) -> str:
    """A local variable name that does not shadow a parameter."""
    name = base
    while name in taken:
        name += "_"
    return name


def return_type_expression(annotation: str) -> str:
    """Turn a return annotation into an expression evaluated at call time.

    String annotations are unquoted so the forward reference is resolved when
    the stub runs rather than compared as text.
    """
    node = ast.parse(annotation, mode="eval").body
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return annotation


def _calls_tuple(method: MethodMember) -> str:
    names = [p.name for p in method.parameters]
    if not names:
        return "()"
    if len(names) == 1:
        return f"({names[0]},)"
    return f"({', '.join(names)})"


def generate_body(method: MethodMember, signature: str) -> list[str]:
    """Generate the statements of a stub, unindented.

    The stub records its arguments in the trace registered for ``signature``
    and, if the method returns a value, returns the programmed result after
    checking it against the declared return type.

    Args:
        method: The method being mocked
        signature: Its derived signature

    Returns:
        Source lines of the body
    """
    receiver = method.receiver
    taken = {p.name for p in method.parameters} | {receiver}
    signature_var = _local_name("signature", taken)
    trace_var = _local_name("trace", taken)

    lines = [
        f"{signature_var} = {signature!r}",
        f"{trace_var} = {receiver}.{TRACKER_FIELD}.trace.get({signature_var})",
        f"if {trace_var} is None:",
        f"    raise {RUNTIME_ALIAS}.MockFatalError(f'Mock function required for {{{signature_var}}}')",
        f"{trace_var}.calls.append({_calls_tuple(method)})",
    ]

    if method.returns_value:
        result_var = _local_name("result", taken)
        return_type = return_type_expression(method.return_annotation)
        lines.extend(
            [
                f"{result_var} = {trace_var}.result",
                f"if not {RUNTIME_ALIAS}.conforms({result_var}, {return_type}, owner={receiver}.__class__):",
                f"    raise {RUNTIME_ALIAS}.MockFatalError(f'Mock result required for {{{signature_var}}}')",
                f"return {result_var}",
            ]
        )

    logger.debug(f"Generated stub body for {signature}: {len(lines)} lines")
    return lines
