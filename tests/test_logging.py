import logging

from app.core.logging import ContextFilter, log_context


def _record() -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, "hello", None, None)


def test_unbound_fields_default_to_dash():
    record = _record()
    assert ContextFilter().filter(record)
    assert record.user_id == "-"
    assert record.document_id == "-"
    assert record.request_id == "-"


def test_bound_fields_nest_and_reset():
    with log_context(user_id=7):
        with log_context(document_id=42):
            inner = _record()
            ContextFilter().filter(inner)
        outer = _record()
        ContextFilter().filter(outer)
    after = _record()
    ContextFilter().filter(after)

    assert (inner.user_id, inner.document_id) == (7, 42)
    assert (outer.user_id, outer.document_id) == (7, "-")
    assert after.user_id == "-"


def test_explicit_extra_wins():
    record = _record()
    record.user_id = 99
    with log_context(user_id=7):
        ContextFilter().filter(record)
    assert record.user_id == 99
