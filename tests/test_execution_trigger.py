import pytest

from iosched.execution_trigger import ExecutionTrigger


def test_values_fixed_by_definition():
    assert ExecutionTrigger(1) is ExecutionTrigger.READ
    assert ExecutionTrigger(2) is ExecutionTrigger.WRITE
    assert ExecutionTrigger(255) is ExecutionTrigger.EAGER


def test_read_and_write_are_distinct_bits():
    assert ExecutionTrigger(1) & ExecutionTrigger(2) == 0


def test_lookup_by_value():
    assert ExecutionTrigger(2) is ExecutionTrigger.WRITE


def test_unknown_value_rejected():
    with pytest.raises(ValueError):
        ExecutionTrigger(4)