import io
import json

from loguru import logger

from arcade_api.core.logging import JsonLineSink, scrub


def _capture(emit) -> list[dict]:
    buffer = io.StringIO()
    sink = JsonLineSink(service_name="arcade-api", environment="development", version="0.1.0", stream=buffer)
    handler_id = logger.add(sink, level="DEBUG")
    try:
        emit()
    finally:
        logger.remove(handler_id)
    return [json.loads(line) for line in buffer.getvalue().splitlines()]


def test_sink_stamps_metadata_and_masks_credentials() -> None:
    records = _capture(
        lambda: logger.bind(user_id="player-1", session_token="abc.def").info("Reward redeemed")
    )

    assert len(records) == 1
    payload = records[0]
    assert payload["message"] == "Reward redeemed"
    assert payload["level"] == "info"
    assert payload["service"] == "arcade-api"
    assert payload["version"] == "0.1.0"
    assert payload["user_id"] == "player-1"
    assert payload["session_token"] == "[redacted]"
    assert "trace_id" not in payload


def test_sink_renders_exception_type_and_detail() -> None:
    def emit() -> None:
        try:
            raise RuntimeError("ledger offline")
        except RuntimeError:
            logger.exception("Ledger unit failed to commit")

    payload = _capture(emit)[0]

    assert payload["level"] == "error"
    assert payload["exception"] == {"type": "RuntimeError", "detail": "ledger offline"}


def test_scrub_is_case_insensitive() -> None:
    assert scrub({"Authorization": "Bearer x", "coins": 5}) == {"Authorization": "[redacted]", "coins": 5}
