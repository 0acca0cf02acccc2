"""
Tests for request correlation in structured logs.
"""

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.logging import (
    add_correlation_context, add_service_context, clear_context, get_request_id, set_request_id
)


def test_request_id_added_to_events():
    set_request_id("req-9")
    try:
        event = add_correlation_context(None, "info", {"event": "hello"})
    finally:
        clear_context()

    assert event == {"event": "hello", "request_id": "req-9"}


def test_no_correlation_fields_without_request():
    clear_context()
    assert add_correlation_context(None, "info", {"event": "hello"}) == {"event": "hello"}


def test_generated_request_id():
    request_id = set_request_id()
    try:
        assert request_id
        assert get_request_id() == request_id
    finally:
        clear_context()
    assert get_request_id() is None


def test_service_taken_from_logger_name():
    event = add_service_context(None, "info", {"event": "x", "logger": "gateway.proxy"})
    assert event["service"] == "gateway"
