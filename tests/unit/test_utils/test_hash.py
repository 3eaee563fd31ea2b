"""Tests for SMS message fingerprinting."""

import hashlib

from subwatch.models.subscription import SubscriptionMessage
from subwatch.utils.hash import calculate_message_fingerprint, sha256_hex


def test_sha256_hex_matches_hashlib():
    """Test digest matches hashlib"""
    expected = hashlib.sha256("hello".encode("utf-8")).hexdigest()
    assert sha256_hex("hello") == expected


def test_raw_string_hashed_as_is():
    """Test raw message strings are hashed directly"""
    text = "Your Netflix payment of $9.99 was successful"
    assert calculate_message_fingerprint(text) == sha256_hex(text)


def test_structured_message_includes_sender():
    """Test structured messages hash sender and body together"""
    message = SubscriptionMessage(
        user_id="user-1", sender="NETFLIX", message_body="Payment received"
    )
    assert calculate_message_fingerprint(message) == sha256_hex(
        "NETFLIX:Payment received"
    )


def test_different_sender_changes_fingerprint():
    """Test same body from another sender produces a different fingerprint"""
    first = SubscriptionMessage(user_id="u", sender="A", message_body="Paid")
    second = SubscriptionMessage(user_id="u", sender="B", message_body="Paid")
    assert calculate_message_fingerprint(first) != calculate_message_fingerprint(second)


def test_fingerprint_is_stable():
    """Test fingerprint is deterministic"""
    assert calculate_message_fingerprint("abc") == calculate_message_fingerprint("abc")
    assert len(calculate_message_fingerprint("abc")) == 64
