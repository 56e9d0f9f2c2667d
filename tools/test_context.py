#!/usr/bin/env python3
"""
Test suite for scoped foreign contexts.

Tests:
- Exit runs exactly once on success and on failure
- Block failures stay observable after exit
- Foreign suppression requests are ignored
- Exit failures with and without a block failure
- Enter failures, state transitions and re-entry
- scope() with a block, and ``with`` directly on a proxy
"""

import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import numpy as np

import tfproxy as tp
from fake_runtime import make_runtime, Session


def _root():
    return tp.attach(make_runtime(), "fake")


def test_exit_runs_on_success():
    """Test a clean block enters and exits once and binds the value."""
    print("Testing scope success path...", end=" ")

    fake = _root()
    sess = fake.Session()
    context = tp.scope(sess)
    assert context.state is tp.ScopeState.UNENTERED

    with context as bound:
        assert context.state is tp.ScopeState.ACTIVE
        assert bound == sess, "Session.__enter__ returns the session itself"
        result = bound.run(fake.constant([1.0, 2.0]))
        assert np.allclose(result, [1.0, 2.0])

    assert context.state is tp.ScopeState.EXITED
    raw = tp.unwrap(sess)
    assert raw.enters == 1
    assert raw.exits == 1
    assert raw.last_exc_type is None

    print("PASSED")


def test_exit_runs_once_when_block_fails():
    """Test a failing block still exits once and its error propagates."""
    print("Testing scope failure path...", end=" ")

    fake = _root()
    sess = fake.Session()
    try:
        with tp.scope(sess):
            raise ValueError("block failed")
        assert False, "Expected ValueError"
    except ValueError as e:
        assert str(e) == "block failed"

    raw = tp.unwrap(sess)
    assert raw.exits == 1, f"Exit should run once, ran {raw.exits} times"
    assert raw.last_exc_type is ValueError

    print("PASSED")


def test_suppression_ignored():
    """Test a foreign exit returning True does not swallow the block error."""
    print("Testing suppression is ignored...", end=" ")

    fake = _root()
    sess = fake.SuppressingSession()
    try:
        with tp.scope(sess):
            raise KeyError("missing feed")
        assert False, "Block error should not be suppressed"
    except KeyError:
        pass

    assert tp.unwrap(sess).exits == 1

    print("PASSED")


def test_exit_error_after_clean_block():
    """Test an exit failure after a clean block raises ContextExitError."""
    print("Testing exit failure...", end=" ")

    fake = _root()
    sess = fake.FailingExitSession()
    try:
        with tp.scope(sess):
            pass
        assert False, "Expected ContextExitError"
    except tp.ContextExitError as e:
        assert e.original is None
        assert isinstance(e.exit_error, RuntimeError)
        assert e.__cause__ is e.exit_error
        assert "session close failed" in str(e)
        assert e.error_code == tp.ErrorCode.CONTEXT_EXIT

    assert tp.unwrap(sess).exits == 1

    print("PASSED")


def test_exit_error_and_block_error_both_observable():
    """Test both failures are reachable when block and exit fail."""
    print("Testing double failure...", end=" ")

    fake = _root()
    sess = fake.FailingExitSession()
    try:
        with tp.scope(sess):
            raise ValueError("block failed")
        assert False, "Expected ContextExitError"
    except tp.ContextExitError as e:
        assert isinstance(e.original, ValueError)
        assert str(e.original) == "block failed"
        assert isinstance(e.exit_error, RuntimeError)
        assert "block failed" in str(e)
        assert "session close failed" in str(e)

    assert tp.unwrap(sess).exits == 1

    print("PASSED")


def test_enter_failure_skips_exit():
    """Test a failing enter raises and never calls exit."""
    print("Testing enter failure...", end=" ")

    fake = _root()
    sess = fake.FailingEnterSession()
    context = tp.scope(sess)
    try:
        with context:
            assert False, "Block should not run"
    except RuntimeError as e:
        assert str(e) == "could not open session"
        assert e.proxy_path == ("fake", "FailingEnterSession()", "__enter__")
    assert isinstance(tp.get_last_error(), tp.ForeignCallError)

    assert context.state is tp.ScopeState.UNENTERED
    assert tp.unwrap(sess).exits == 0

    print("PASSED")


def test_scope_cannot_be_reentered():
    """Test a finished scope cannot be entered again."""
    print("Testing re-entry...", end=" ")

    context = tp.scope(Session())
    with context:
        pass
    try:
        with context:
            pass
        assert False, "Expected ScopeError"
    except tp.ScopeError as e:
        assert "exited" in str(e)

    print("PASSED")


def test_not_a_context_manager():
    """Test objects without enter/exit are rejected up front."""
    print("Testing non-context objects...", end=" ")

    fake = _root()
    try:
        tp.scope(fake.constant([1]))
        assert False, "Expected TypeError"
    except TypeError as e:
        assert "fake.constant()" in str(e)

    print("PASSED")


def test_scope_with_block():
    """Test scope() runs a block with or without the bound value."""
    print("Testing scope() with a block...", end=" ")

    fake = _root()
    sess = fake.Session()
    total = tp.scope(sess, lambda s: s.run(fake.constant([2.0, 3.0])))
    assert np.allclose(total, [2.0, 3.0])
    assert tp.unwrap(sess).exits == 1

    calls = []
    tp.scope(fake.Session(), lambda: calls.append("ran"))
    assert calls == ["ran"]

    sess = fake.Session()
    try:
        tp.scope(sess, lambda s: s.missing_method())
        assert False, "Expected ResolutionError"
    except tp.ResolutionError:
        pass
    assert tp.unwrap(sess).exits == 1

    print("PASSED")


def test_with_on_proxy():
    """Test ``with proxy as value`` goes through the scoped context."""
    print("Testing with on a proxy...", end=" ")

    fake = _root()
    sess = fake.Session()
    try:
        with sess as bound:
            assert tp.unwrap(bound).enters == 1
            raise RuntimeError("inside")
    except RuntimeError:
        pass
    assert tp.unwrap(sess).exits == 1

    with fake.Session() as outer:
        with fake.Session() as inner:
            assert outer != inner
        assert tp.unwrap(inner).exits == 1
        assert tp.unwrap(outer).exits == 0
    assert tp.unwrap(outer).exits == 1

    print("PASSED")


def test_bound_value_after_exit():
    """Test a bound value captured past its scope refers to a closed object."""
    print("Testing bound value lifetime...", end=" ")

    fake = _root()
    with tp.scope(fake.Session()) as sess:
        pass
    try:
        sess.run(1)
        assert False, "Closed session should fail"
    except RuntimeError as e:
        assert "closed Session" in str(e)

    print("PASSED")


def main():
    """Run all tests."""
    print("=" * 60)
    print("Scoped Context Tests")
    print("=" * 60)

    tests = [
        test_exit_runs_on_success,
        test_exit_runs_once_when_block_fails,
        test_suppression_ignored,
        test_exit_error_after_clean_block,
        test_exit_error_and_block_error_both_observable,
        test_enter_failure_skips_exit,
        test_scope_cannot_be_reentered,
        test_not_a_context_manager,
        test_scope_with_block,
        test_with_on_proxy,
        test_bound_value_after_exit,
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
