import json
import logging

from saasresto.core.logging_setup import JsonFormatter, mask_sensitive
from saasresto.core.request_context import clear_request_context, current_context, update_request_context


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("saasresto.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_mask_sensitive_values():
    masked = mask_sensitive("login password=Demo12345! session_token=abc123; Authorization: Bearer xyz")

    assert "Demo12345!" not in masked
    assert "abc123" not in masked
    assert "xyz" not in masked


def test_json_formatter_includes_request_context():
    update_request_context(request_id="req-1", tenant_slug="demo")
    try:
        payload = json.loads(JsonFormatter("%(message)s").format(_record("request completed", status_code=200)))
    finally:
        clear_request_context()

    assert payload["request_id"] == "req-1"
    assert payload["tenant_slug"] == "demo"
    assert payload["status_code"] == 200
    assert payload["message"] == "request completed"


def test_update_request_context_keeps_existing_fields():
    update_request_context(request_id="req-2")
    update_request_context(user_id="7", tenant_slug=None)
    try:
        context = current_context()
        assert context.request_id == "req-2"
        assert context.user_id == "7"
        assert context.tenant_slug is None
    finally:
        clear_request_context()

    assert current_context().request_id is None
