"""Tests for playpub.core.result module."""

from __future__ import annotations

import pytest

from playpub.core.result import Err, Ok, Result


def _divide(a: int, b: int) -> Result[int, str]:
    if b == 0:
        return Err("division by zero")
    return Ok(a // b)


class TestOk:
    def test_value_access(self) -> None:
        assert Ok(42).value == 42

    def test_frozen(self) -> None:
        ok = Ok(1)
        with pytest.raises(AttributeError):
            ok.value = 2  # type: ignore[misc]


class TestErr:
    def test_error_access(self) -> None:
        assert Err("boom").error == "boom"

    def test_frozen(self) -> None:
        err = Err("boom")
        with pytest.raises(AttributeError):
            err.error = "other"  # type: ignore[misc]


class TestBranching:
    def test_isinstance(self) -> None:
        assert isinstance(_divide(4, 2), Ok)
        assert isinstance(_divide(4, 0), Err)

    def test_pattern_matching(self) -> None:
        match _divide(9, 3):
            case Ok(value):
                assert value == 3
            case Err(_):
                pytest.fail("expected Ok")

    def test_equality(self) -> None:
        assert Ok(1) == Ok(1)
        assert Err("x") == Err("x")
        assert Ok(1) != Err(1)

    def test_repr(self) -> None:
        assert repr(Ok("a")) == "Ok('a')"
        assert repr(Err("b")) == "Err('b')"
