#!/usr/bin/env python3
"""
Test suite for value marshaling.

Tests:
- Int/float values keep their host type
- Int and Float tags (construction-time checks)
- Lists to numpy arrays (dtype, rank, single-element case)
- 2-D round trip through the foreign boundary
- Tuples, dicts and ragged lists
- Foreign results converted back (scalars, arrays, proxies)
- Integer-only foreign parameters
"""

import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import numpy as np

import tfproxy as tp
from fake_runtime import make_runtime, FakeTensor


def test_scalars_keep_type():
    """Test ints and floats are never coerced into each other."""
    print("Testing scalar types...", end=" ")

    assert type(tp.to_foreign(3)) is int
    assert type(tp.to_foreign(3.0)) is float
    assert tp.to_foreign(True) is True
    assert tp.to_foreign(None) is None
    assert tp.to_foreign("SAME") == "SAME"

    print("PASSED")


def test_int_tag():
    """Test Int accepts integral values and rejects the rest."""
    print("Testing Int tag...", end=" ")

    assert tp.Int(3).to_foreign() == 3
    assert type(tp.Int(2.0).to_foreign()) is int
    assert type(tp.Int(np.int32(7)).to_foreign()) is int

    strides = tp.to_foreign(tp.Int([1, 2, 2, 1]))
    assert isinstance(strides, np.ndarray)
    assert strides.dtype == np.int64
    assert strides.tolist() == [1, 2, 2, 1]

    for bad in (2.5, [1, 2.5], True, "3", None):
        try:
            tp.Int(bad)
            assert False, f"Int({bad!r}) should fail"
        except TypeError:
            pass

    assert tp.Int(tp.Int(4)) == tp.Int(4)
    assert tp.Int([1, 2]) == tp.Int([1, 2])
    assert tp.Int(1) != tp.Float(1)

    print("PASSED")


def test_float_tag():
    """Test Float tags numbers as floating point."""
    print("Testing Float tag...", end=" ")

    assert type(tp.to_foreign(tp.Float(1))) is float
    rates = tp.to_foreign(tp.Float([1, 2]))
    assert rates.dtype == np.float64

    try:
        tp.Float("0.5")
        assert False, "Float('0.5') should fail"
    except TypeError:
        pass

    print("PASSED")


def test_list_to_array_dtype():
    """Test numeric lists become arrays with dtypes from the host values."""
    print("Testing list dtypes...", end=" ")

    ints = tp.to_foreign([1, 2, 3])
    assert isinstance(ints, np.ndarray) and ints.dtype == np.int64

    floats = tp.to_foreign([1, 2.5, 3])
    assert floats.dtype == np.float64

    flags = tp.to_foreign([True, False])
    assert flags.dtype == np.bool_

    mixed = tp.to_foreign([True, 1])
    assert isinstance(mixed, list), "bool/int mixes are not coerced"

    print("PASSED")


def test_single_element_list():
    """Test the general path keeps a length-1 list as a 1-element array."""
    print("Testing single-element list...", end=" ")

    general = tp.to_foreign([5])
    assert isinstance(general, np.ndarray)
    assert general.shape == (1,)

    dims = tp.to_foreign(tp.shape(5))
    assert type(dims) is list
    assert dims == [5]

    print("PASSED")


def test_two_dimensional_round_trip():
    """Test a 2-D table keeps dimensions and values through the boundary."""
    print("Testing 2-D round trip...", end=" ")

    table = [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]]
    foreign = tp.to_foreign(table)
    assert foreign.shape == (2, 3)

    back = tp.from_foreign(foreign)
    assert isinstance(back, np.ndarray)
    assert back.shape == (2, 3)
    assert back.tolist() == table

    fake = tp.attach(make_runtime(), "fake")
    through_call = fake.identity(table)
    assert np.array_equal(through_call, np.array(table))
    assert tp.to_host(foreign) == table

    print("PASSED")


def test_higher_rank():
    """Test nested lists of rank 3 map to 3-D arrays."""
    print("Testing rank-3 lists...", end=" ")

    cube = [[[1, 2], [3, 4]], [[5, 6], [7, 8]]]
    foreign = tp.to_foreign(cube)
    assert foreign.shape == (2, 2, 2)
    assert foreign.dtype == np.int64
    assert tp.to_host(foreign) == cube

    print("PASSED")


def test_ragged_and_structured_values():
    """Test ragged lists, tuples and dicts convert item by item."""
    print("Testing structured values...", end=" ")

    ragged = tp.to_foreign([[1, 2], [3]])
    assert isinstance(ragged, list)
    assert isinstance(ragged[0], np.ndarray) and ragged[1].tolist() == [3]

    pair = tp.to_foreign((1, [2.0, 3.0]))
    assert isinstance(pair, tuple)
    assert pair[0] == 1 and pair[1].dtype == np.float64

    options = tp.to_foreign({"strides": [1, 1], "padding": "VALID"})
    assert options["padding"] == "VALID"
    assert options["strides"].tolist() == [1, 1]

    assert tp.to_foreign([]) == []

    print("PASSED")


def test_from_foreign_conversions():
    """Test foreign results come back as host values or proxies."""
    print("Testing from_foreign()...", end=" ")

    assert tp.from_foreign(np.float32(0.5)) == 0.5
    assert type(tp.from_foreign(np.int64(2))) is int
    assert tp.from_foreign([np.int64(1), 2]) == [1, 2]

    tensor = FakeTensor([1.0])
    wrapped = tp.from_foreign(tensor, ("fake", "t"))
    assert isinstance(wrapped, tp.ForeignProxy)
    assert tp.unwrap(wrapped) is tensor
    assert tp.path_of(wrapped) == ("fake", "t")

    proxy = tp.attach(tensor, "t")
    assert tp.from_foreign(proxy) is proxy
    assert tp.to_foreign(proxy) is tensor

    print("PASSED")


def test_integer_only_parameter():
    """Test integer-only parameters fail with floats and pass with ints."""
    print("Testing integer-only parameters...", end=" ")

    fake = tp.attach(make_runtime(), "fake")
    t = fake.constant(list(range(6)))

    assert fake.reshape(t, [2, 3]).shape == [2, 3]
    assert fake.reshape(t, tp.Int([3.0, 2.0])).shape == [3, 2]

    try:
        fake.reshape(t, [2.0, 3.0])
        assert False, "Float dimensions should not be coerced"
    except TypeError as e:
        assert str(e) == "Expected int for shape, got float64"
        assert tp.get_last_error().foreign is e

    print("PASSED")


def test_axis_not_renumbered():
    """Test axis arguments reach the foreign side unchanged."""
    print("Testing axis pass-through...", end=" ")

    fake = tp.attach(make_runtime(), "fake")
    t = fake.constant([[1, 2], [3, 4]])
    assert fake.reduce_sum(t, axis=1).numpy().tolist() == [3, 7]
    assert fake.describe(axis=0)["kwargs"]["axis"] == 0

    print("PASSED")


def main():
    """Run all tests."""
    print("=" * 60)
    print("Marshaling Tests")
    print("=" * 60)

    tests = [
        test_scalars_keep_type,
        test_int_tag,
        test_float_tag,
        test_list_to_array_dtype,
        test_single_element_list,
        test_two_dimensional_round_trip,
        test_higher_rank,
        test_ragged_and_structured_values,
        test_from_foreign_conversions,
        test_integer_only_parameter,
        test_axis_not_renumbered,
    ]

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"FAILED: {e}")
            failed += 1

    print("=" * 60)
    print(f"Results: {passed} passed, {failed} failed")
    print("=" * 60)

    return 0 if failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
