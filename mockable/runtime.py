"""Runtime tracking model driven by generated mocks and by test code.

Generated mock classes import this module as ``_mockable_``. Test code reaches
the same objects through :class:`Wrapper`::

    wrapper = mock(MyProtocol, 1.0, 2.0)
    wrapper.function("foo() -> int").returns(123)
    assert wrapper.instance.foo() == 123

Nothing here is synchronized; a mock belongs to one test on one thread.
"""

import inspect
import logging
import types
import typing
from typing import (
    Annotated,
    Any,
    Generic,
    Protocol,
    Self,
    TypeVar,
    Union,
    get_args,
    get_origin,
    runtime_checkable,
)

from pydantic import AfterValidator, ConfigDict, PydanticUserError, TypeAdapter, ValidationError
from pydantic_core import SchemaError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MockFatalError(BaseException):
    """A mock was used in a way the test never set up.

    Derives from BaseException so that ``except Exception`` in the code under
    test cannot swallow it.
    """


class _Unset:
    """Marker for a trace whose result was never programmed."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


class FunctionTrace:
    """Programmable result and call history for one method signature."""

    def __init__(self, result: Any = UNSET, calls: list[tuple] | None = None):
        self.result = result
        self.calls: list[tuple] = calls if calls is not None else []

    def returns(self, result: Any) -> "FunctionTrace":
        """Program the value the next calls return."""
        self.result = result
        return self

    @property
    def has_result(self) -> bool:
        return self.result is not UNSET

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def last_call(self) -> tuple | None:
        return self.calls[-1] if self.calls else None

    def reset(self) -> None:
        """Forget the programmed result and the call history."""
        self.result = UNSET
        self.calls.clear()

    def __repr__(self) -> str:
        return f"FunctionTrace(result={self.result!r}, calls={self.calls!r})"


class Tracker:
    """Signature-indexed ledger owned by one mock instance.

    Entries are fixed at construction: one per method signature of the mocked
    interface.
    """

    def __init__(self, function_signatures: list[str]):
        self.trace: dict[str, FunctionTrace] = {}
        for signature in function_signatures:
            if signature in self.trace:
                raise ValueError(f"Duplicate function signature: {signature}")
            self.trace[signature] = FunctionTrace()

    @property
    def signatures(self) -> list[str]:
        return list(self.trace)

    def function(self, signature: str) -> FunctionTrace:
        """Return the trace registered for a signature.

        Raises:
            MockFatalError: If the signature was never registered
        """
        trace = self.trace.get(signature)
        if trace is None:
            raise MockFatalError(f"Invalid function signature: {signature}")
        return trace

    def reset(self) -> None:
        for trace in self.trace.values():
            trace.reset()

    def __repr__(self) -> str:
        return f"Tracker({self.signatures!r})"


@runtime_checkable
class MockTrackable(Protocol):
    """Capability exposed by every generated mock."""

    _mock_tracker_: Tracker


class Wrapper(Generic[T]):
    """A generated mock instance plus access to its tracker."""

    def __init__(self, instance: T):
        if not isinstance(instance, MockTrackable):
            raise MockFatalError(f"Wrapper instance must be mockable: {instance!r}")
        self.instance = instance

    @property
    def tracker(self) -> Tracker:
        return self.instance._mock_tracker_

    def function(self, signature: str) -> FunctionTrace:
        """Return the trace for a signature of the wrapped instance."""
        return self.tracker.function(signature)

    def __repr__(self) -> str:
        return f"Wrapper({type(self.instance).__name__})"


_STRICT = ConfigDict(strict=True, arbitrary_types_allowed=True)


def _build_adapter(annotation: Any) -> TypeAdapter:
    try:
        return TypeAdapter(annotation, config=_STRICT)
    except (PydanticUserError, SchemaError):
        pass
    # Models, dataclasses and TypedDicts bring their own config
    try:
        return TypeAdapter(annotation)
    except (PydanticUserError, SchemaError) as e:
        raise MockFatalError(f"Cannot check results against {annotation!r}: {e}") from e


_adapters: dict[Any, TypeAdapter] = {}


def _adapter(annotation: Any) -> TypeAdapter:
    try:
        hash(annotation)
    except TypeError:
        return _build_adapter(annotation)
    adapter = _adapters.get(annotation)
    if adapter is None:
        adapter = _adapters[annotation] = _build_adapter(annotation)
    return adapter


def _is_protocol_class(annotation: Any) -> bool:
    return isinstance(annotation, type) and getattr(annotation, "_is_protocol", False)


def _implements(value: Any, protocol: type) -> bool:
    if protocol in type(value).__mro__:
        return True
    return getattr(protocol, "_is_runtime_protocol", False) and isinstance(value, protocol)


_nominal_validators: dict[type, AfterValidator] = {}


def _nominal_validator(cls: type) -> AfterValidator:
    """A validator accepting implementations of a class, cached per class."""
    validator = _nominal_validators.get(cls)
    if validator is None:

        def check(value: Any) -> Any:
            if not _implements(value, cls):
                raise ValueError(f"{type(value).__name__} does not implement {cls.__name__}")
            return value

        validator = _nominal_validators[cls] = AfterValidator(check)
    return validator


def _resolve(annotation: Any, owner: type | None) -> Any:
    """Rewrite an annotation into one pydantic can validate.

    Protocol classes, at any depth, become ``Any`` followed by a nominal
    check, and ``Self`` becomes the same check against the owning class.
    """
    if annotation is Self:
        return Annotated[Any, _nominal_validator(owner)] if owner is not None else Any
    if _is_protocol_class(annotation):
        return Annotated[Any, _nominal_validator(annotation)]

    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if _is_protocol_class(origin):
        return Annotated[Any, _nominal_validator(origin)]
    args = get_args(annotation)
    if origin is Annotated:
        inner = _resolve(args[0], owner)
        return annotation if inner is args[0] else Annotated[(inner, *annotation.__metadata__)]

    resolved = tuple(_resolve(arg, owner) for arg in args)
    if all(new is old for new, old in zip(resolved, args)):
        return annotation
    if origin is Union or origin is types.UnionType:
        return Union[resolved]
    try:
        return origin[resolved]
    except TypeError:
        logger.debug(f"Cannot rebuild {annotation!r}, validating it unchanged")
        return annotation


def conforms(value: Any, annotation: Any, owner: type | None = None) -> bool:
    """Check whether a programmed value can be returned as ``annotation``.

    The value is never coerced: it either already is of the declared type or
    it does not conform. ``owner`` is the class ``Self`` stands for.

    Raises:
        MockFatalError: If ``annotation`` cannot be checked at all
    """
    if value is UNSET:
        return False
    annotation = _resolve(annotation, owner)
    try:
        _adapter(annotation).validate_python(value, strict=True)
    except ValidationError:
        return False
    return True


def _accepts(method: Any, args: tuple, kwargs: dict) -> bool:
    """Whether a stub's declared parameters accept the given arguments."""
    try:
        bound = inspect.signature(method).bind(*args, **kwargs)
    except TypeError:
        return False
    try:
        hints = typing.get_type_hints(getattr(method, "__func__", method))
    except NameError as e:
        logger.debug(f"Matching {method.__name__} by arity only: {e}")
        return True

    owner = type(method.__self__) if hasattr(method, "__self__") else None
    parameters = inspect.signature(method).parameters
    for name, value in bound.arguments.items():
        if name not in hints:
            continue
        kind = parameters[name].kind
        if kind is inspect.Parameter.VAR_POSITIONAL:
            values = list(value)
        elif kind is inspect.Parameter.VAR_KEYWORD:
            values = list(value.values())
        else:
            values = [value]
        if not all(conforms(v, hints[name], owner) for v in values):
            return False
    return True


def resolve_overload(
    tracker: Tracker,
    name: str,
    candidates: list[tuple[str, Any]],
    args: tuple,
    kwargs: dict,
) -> Any:
    """Pick the overload stub that handles a call.

    Candidates are (signature, bound stub) pairs in declaration order. Among
    those that accept the arguments, the first one whose trace has a
    programmed result wins; otherwise the first accepting one does.

    Raises:
        MockFatalError: If no overload accepts the arguments
    """
    accepted = [(s, m) for s, m in candidates if _accepts(m, args, kwargs)]
    if not accepted:
        raise MockFatalError(f"No overload of {name} accepts arguments {args!r} {kwargs!r}")
    for signature, method in accepted:
        if tracker.function(signature).has_result:
            return method
    return accepted[0][1]
