"""Tests for cancellation contexts."""

import time

import pytest

from cloud_inventory.core.context import Context
from cloud_inventory.core.exceptions import OperationCancelled


def test_background_context_is_live():
    ctx = Context.background()

    assert not ctx.is_cancelled()
    assert ctx.remaining() is None
    ctx.check()


def test_cancel_is_observed_by_check():
    ctx = Context()
    ctx.cancel()

    assert ctx.is_cancelled()
    with pytest.raises(OperationCancelled, match="Operation cancelled"):
        ctx.check()


def test_expired_deadline():
    ctx = Context(timeout=0)

    assert ctx.deadline_exceeded
    with pytest.raises(OperationCancelled, match="deadline exceeded"):
        ctx.check()


def test_child_follows_parent_cancellation():
    parent = Context()
    child = parent.with_timeout(60)

    parent.cancel()

    assert child.is_cancelled()


def test_child_cancellation_does_not_reach_parent():
    parent = Context()
    child = parent.with_timeout(60)

    child.cancel()

    assert not parent.is_cancelled()


def test_remaining_uses_nearest_deadline():
    parent = Context(timeout=1)
    child = parent.with_timeout(60)

    assert child.remaining() <= 1


def test_short_timeout_expires():
    ctx = Context(timeout=0.01)
    time.sleep(0.02)

    assert ctx.is_cancelled()
