"""Tests for stub body generation."""

from mockable.models import MethodMember, Parameter
from mockable.stub_generator import generate_body, return_type_expression


class TestGenerateBody:
    """Tests for generate_body function."""

    def test_method_without_return(self):
        """A void stub records the call and stops."""
        body = generate_body(MethodMember(name="foo"), "foo()")

        assert body == [
            "signature = 'foo()'",
            "trace = self._mock_tracker_.trace.get(signature)",
            "if trace is None:",
            "    raise _mockable_.MockFatalError(f'Mock function required for {signature}')",
            "trace.calls.append(())",
        ]

    def test_method_with_return(self):
        """A returning stub checks the programmed result against the type."""
        method = MethodMember(
            name="foo",
            parameters=(Parameter("p1", "int"), Parameter("p2", "float")),
            return_annotation="float",
        )

        body = generate_body(method, "foo(int, float) -> float")

        assert body[0] == "signature = 'foo(int, float) -> float'"
        assert body[4] == "trace.calls.append((p1, p2))"
        assert body[5:] == [
            "result = trace.result",
            "if not _mockable_.conforms(result, float, owner=self.__class__):",
            "    raise _mockable_.MockFatalError(f'Mock result required for {signature}')",
            "return result",
        ]

    def test_single_parameter_is_a_tuple(self):
        method = MethodMember(name="put", parameters=(Parameter("item", "str"),))

        body = generate_body(method, "put(str)")

        assert "trace.calls.append((item,))" in body

    def test_locals_avoid_parameter_names(self):
        """Parameters named like the stub's locals are not shadowed."""
        method = MethodMember(
            name="verify",
            parameters=(Parameter("signature", "bytes"), Parameter("trace", "bool")),
            return_annotation="bool",
        )

        body = generate_body(method, "verify(bytes, bool) -> bool")

        assert body[0] == "signature_ = 'verify(bytes, bool) -> bool'"
        assert "trace_.calls.append((signature, trace))" in body
        assert "return result" in body

    def test_declared_receiver_reaches_the_tracker(self):
        """A receiver not named self is used for the tracker and the owner."""
        method = MethodMember(name="size", receiver="this", return_annotation="int")

        body = generate_body(method, "size() -> int")

        assert body[1] == "trace = this._mock_tracker_.trace.get(signature)"
        assert "if not _mockable_.conforms(result, int, owner=this.__class__):" in body


class TestReturnTypeExpression:
    def test_forward_reference_is_unquoted(self):
        assert return_type_expression("'Widget'") == "Widget"

    def test_expression_kept(self):
        assert return_type_expression("list[int] | None") == "list[int] | None"
