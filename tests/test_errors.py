import pytest

from sdb.errors import AlreadyExistsError, InvalidArgumentError, NotFoundError, SdbError


@pytest.mark.parametrize("cls", [NotFoundError, AlreadyExistsError, InvalidArgumentError])
def test_errors_caught_as_base_with_message(cls):
    err = cls("boom")
    assert issubclass(cls, SdbError)
    assert str(err) == "boom"


def test_default_message():
    assert str(NotFoundError()) == "not found"


def test_custom_message_replaces_default():
    assert str(AlreadyExistsError("bloom filter exist")) == "bloom filter exist"


def test_invalid_argument_is_value_error():
    err = InvalidArgumentError("key is empty")
    assert issubclass(InvalidArgumentError, ValueError)
    assert str(err) == "key is empty"


def test_specific_error_not_swallowed_by_sibling():
    assert issubclass(NotFoundError, AlreadyExistsError) is False
    assert issubclass(AlreadyExistsError, NotFoundError) is False
    assert str(NotFoundError()) == "not found"