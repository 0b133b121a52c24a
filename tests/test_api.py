"""Tests for the import-time decorator and runtime construction."""

import sys
from abc import ABC, abstractmethod
from typing import Protocol, Self, overload

import pytest

from mockable import mock, mock_type_for, mockable
from mockable.diagnostics import NoTypeSpecified, NotAnInterface
from mockable.runtime import MockFatalError, Wrapper


@mockable
class MyProtocol(Protocol):
    @property
    def a(self) -> float: ...

    @property
    def b(self) -> float: ...

    @overload
    def foo(self) -> None: ...
    @overload
    def foo(self) -> int: ...
    @overload
    def foo(self, p1: int, p2: float) -> float: ...


@mockable(when=False)
class Disabled(Protocol):
    def ping(self) -> None: ...


@mockable
class Inventory(ABC):
    owner: str

    @abstractmethod
    def count(self, sku: str) -> int: ...

    @abstractmethod
    def restock(self, sku: str, amount: int) -> None: ...

    @abstractmethod
    def partner(self) -> "MyProtocol": ...


@mockable
class Ledger(Protocol):
    def latest(self) -> "Entry": ...

    def fork(self) -> Self: ...


class Entry:
    pass


class TestMyProtocolMock:
    def given_mock(self):
        self.mock = mock(MyProtocol, 11, 22)

    def when_foo_is_programmed(self, value):
        self.mock.function("foo() -> int").returns(value)

    def then_properties_are(self, a, b):
        assert self.mock.instance.a == a
        assert self.mock.instance.b == b

    def test_mock_my_protocol(self):
        """Properties initialize positionally and foo() returns its program."""
        self.given_mock()
        self.when_foo_is_programmed(123)
        self.then_properties_are(11, 22)

        result: int = self.mock.instance.foo()

        assert result == 123

    def test_returns_wrapper(self):
        self.given_mock()

        assert isinstance(self.mock, Wrapper)
        assert MyProtocol in type(self.mock.instance).__mro__

    def test_mock_class_bound_in_module(self):
        """The synthesized class lives next to its interface."""
        module = sys.modules[__name__]

        assert module._Mock_MyProtocol_ is mock_type_for(MyProtocol)

    def test_instances_do_not_share_trackers(self):
        first = mock(MyProtocol, 1, 2)
        second = mock(MyProtocol, 3, 4)

        first.function("foo() -> int").returns(1)

        assert not second.function("foo() -> int").has_result

    def test_properties_are_settable(self):
        self.given_mock()

        self.mock.instance.a = 5.0

        assert self.mock.instance.a == 5.0


class TestInventoryMock:
    def test_records_calls_in_order(self):
        inventory = mock(Inventory, "warehouse")

        inventory.instance.restock("apple", 3)
        inventory.instance.restock("pear", 1)

        assert inventory.instance.owner == "warehouse"
        assert inventory.function("restock(str, int)").calls == [("apple", 3), ("pear", 1)]

    def test_unprogrammed_result_is_fatal(self):
        inventory = mock(Inventory, "warehouse")

        with pytest.raises(MockFatalError, match=r"count\(str\) -> int"):
            inventory.instance.count("apple")

        assert inventory.function("count(str) -> int").calls == [("apple",)]

    def test_wrong_type_is_fatal(self):
        inventory = mock(Inventory, "warehouse")
        inventory.function("count(str) -> int").returns("three")

        with pytest.raises(MockFatalError):
            inventory.instance.count("apple")

    def test_returns_another_mock(self):
        """A protocol-typed result accepts a mock of that protocol."""
        inventory = mock(Inventory, "warehouse")
        partner = mock(MyProtocol, 1, 2)
        inventory.function("partner() -> MyProtocol").returns(partner.instance)

        assert inventory.instance.partner() is partner.instance


class TestLedgerMock:
    def test_resolves_types_declared_after_the_interface(self):
        """Return types are looked up in the live module when the stub runs."""
        ledger = mock(Ledger)
        entry = Entry()
        ledger.function("latest() -> Entry").returns(entry)

        assert ledger.instance.latest() is entry

    def test_self_returns_the_mock(self):
        ledger = mock(Ledger)
        ledger.function("fork() -> Self").returns(ledger.instance)

        assert ledger.instance.fork() is ledger.instance

    def test_self_rejects_other_objects(self):
        ledger = mock(Ledger)
        ledger.function("fork() -> Self").returns(Entry())

        with pytest.raises(MockFatalError, match="Mock result required"):
            ledger.instance.fork()


class TestDecoratorFailures:
    def test_disabled_declaration_has_no_mock(self):
        assert "_Mock_Disabled_" not in globals()
        with pytest.raises(MockFatalError, match="has no mock"):
            mock(Disabled)

    def test_plain_class_rejected(self):
        with pytest.raises(NotAnInterface):

            @mockable
            class TestClass:
                pass

    def test_function_rejected(self):
        with pytest.raises(NotAnInterface):

            @mockable
            def helper():
                pass

    def test_mock_without_interface(self):
        with pytest.raises(NoTypeSpecified):
            mock()
