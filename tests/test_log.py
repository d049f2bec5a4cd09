import json
import logging

from capturepack.log import JSONFormatter, configure_logging


def test_configure_logging_replaces_its_own_handler() -> None:
    logger = configure_logging("info")
    configure_logging("debug", json_output=True)

    owned = [handler for handler in logger.handlers if getattr(handler, "_capturepack_handler", False)]
    assert len(owned) == 1
    assert isinstance(owned[0].formatter, JSONFormatter)
    assert logger.level == logging.DEBUG

    configure_logging("warning")


def test_json_formatter_emits_one_object_per_record() -> None:
    record = logging.LogRecord(
        name="capturepack.capture.orchestrator",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="no capture surface for request id=%s",
        args=(3,),
        exc_info=None,
    )

    payload = json.loads(JSONFormatter().format(record))

    assert payload["level"] == "WARNING"
    assert payload["logger"] == "capturepack.capture.orchestrator"
    assert payload["msg"] == "no capture surface for request id=3"
    assert payload["ts"].endswith("Z")
