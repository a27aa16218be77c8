import logging

from anode.logging_config import add_service_name, redact_secrets, setup_logging


def test_redacts_key_material():
    event = redact_secrets(None, "info", {"event": "loaded", "private_key": "0xabc", "signer": "0xf39F"})

    assert event["private_key"] == "***"
    assert event["signer"] == "0xf39F"


def test_service_name_is_added_once():
    assert add_service_name(None, "info", {"event": "x"})["service"] == "anode-paymaster"
    assert add_service_name(None, "info", {"event": "x", "service": "other"})["service"] == "other"


def test_setup_logging_sets_level():
    setup_logging("DEBUG")

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING

    setup_logging("INFO")
