"""
Tests for BatchOptions in microbatcher.config.
"""

import pytest
from pydantic import ValidationError

from microbatcher.config import DEFAULT_FLUSH_INTERVAL_MS, BatchOptions, ErrorPolicy
from microbatcher.payload import PayloadShape


def test_defaults():
    options = BatchOptions()

    assert options.flush_interval_ms is None
    assert options.size_threshold is None
    assert options.force_batch_for_single_call is False
    assert options.error_policy is ErrorPolicy.preserve
    assert options.payload_shape is None


@pytest.mark.parametrize(
    ("flush_interval_ms", "has_batch_resolver", "expected"),
    [
        (None, True, DEFAULT_FLUSH_INTERVAL_MS),
        (None, False, 0),
        (200, True, 200),
        (200, False, 200),
        (0, True, 0),
    ],
)
def test_resolve_flush_interval(flush_interval_ms, has_batch_resolver, expected):
    options = BatchOptions(flush_interval_ms=flush_interval_ms)

    assert options.resolve_flush_interval_ms(has_batch_resolver=has_batch_resolver) == expected


@pytest.mark.parametrize(
    "fields",
    [
        {"flush_interval_ms": -1},
        {"size_threshold": 0},
        {"size_threshold": -3},
        {"error_policy": "ignore"},
        {"unknown_field": True},
    ],
)
def test_invalid_options_are_rejected(fields):
    with pytest.raises(ValidationError):
        BatchOptions(**fields)


def test_options_are_frozen():
    options = BatchOptions(size_threshold=3)

    with pytest.raises(ValidationError):
        options.size_threshold = 4


def test_enum_fields_accept_strings():
    options = BatchOptions(error_policy="wrap", payload_shape="tuple")

    assert options.error_policy is ErrorPolicy.wrap
    assert options.payload_shape is PayloadShape.tuple
