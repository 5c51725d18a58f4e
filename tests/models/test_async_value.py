"""Tests for the AsyncValue tagged container."""

import pytest

from feewatch.models.async_value import (
    Failed,
    Loading,
    NotAsked,
    Success,
    fail,
    initial,
    is_loading,
    is_success,
    last_value,
    status_of,
    succeed,
    to_loading,
)


class TestConstruction:
    """Test AsyncValue constructors."""

    def test_initial_is_not_asked(self):
        assert initial() == NotAsked()

    def test_succeed_and_fail(self):
        error = ValueError("boom")
        assert succeed(42) == Success(42)
        assert fail(error) == Failed(error)

    def test_variants_are_immutable(self):
        value = succeed(1)
        with pytest.raises(AttributeError):
            value.value = 2


class TestToLoading:
    """Test moving values into Loading."""

    def test_from_success_retains_value(self):
        assert to_loading(Success("fees")) == Loading(previous="fees")

    def test_from_not_asked(self):
        assert to_loading(NotAsked()) == Loading(previous=None)

    def test_from_failed_drops_error(self):
        assert to_loading(Failed(RuntimeError("x"))) == Loading(previous=None)

    def test_from_loading_with_previous_does_not_carry_it(self):
        """Only a Success is carried into the next Loading."""
        assert to_loading(Loading(previous="old")) == Loading(previous=None)

    def test_is_pure(self):
        original = Success("fees")
        to_loading(original)
        assert original == Success("fees")


class TestInspection:
    """Test inspection helpers over all variants."""

    @pytest.mark.parametrize("value,expected", [
        (NotAsked(), False),
        (Loading(), False),
        (Loading(previous=5), False),
        (Success(5), True),
        (Failed("e"), False),
    ])
    def test_is_success(self, value, expected):
        assert is_success(value) is expected

    @pytest.mark.parametrize("value,expected", [
        (NotAsked(), None),
        (Loading(), None),
        (Loading(previous=5), 5),
        (Success(7), 7),
        (Failed("e"), None),
    ])
    def test_last_value(self, value, expected):
        assert last_value(value) == expected

    def test_is_loading(self):
        assert is_loading(Loading(previous=1))
        assert not is_loading(Success(1))

    def test_status_names(self):
        assert status_of(NotAsked()) == "not_asked"
        assert status_of(Loading()) == "loading"
        assert status_of(Success(1)) == "success"
        assert status_of(Failed("e")) == "failed"
