from __future__ import annotations

import logging

from workorder.core import config as config_module
from workorder.core.config import settings
from workorder.core.flow_logging import flow_info


def test_flow_info_respects_category_toggles(monkeypatch, caplog):
    logger = logging.getLogger("workorder.tests.flow")
    monkeypatch.setattr(settings, "FLOW_LOGS_ENABLED", True)
    monkeypatch.setattr(settings, "FLOW_LOGS_EDIT_SESSION_ENABLED", True)
    monkeypatch.setattr(settings, "FLOW_LOGS_GATEWAY_ENABLED", False)

    with caplog.at_level(logging.INFO, logger="workorder.tests.flow"):
        flow_info(logger, "gateway_request operation=%s", "save_all", category="gateway")
        flow_info(logger, "edit_session_loaded work_order_id=%s", 1, category="edit_session")

    assert [record.getMessage() for record in caplog.records] == [
        "edit_session_loaded work_order_id=1"
    ]


def test_flow_logs_master_switch(monkeypatch, caplog):
    logger = logging.getLogger("workorder.tests.flow")
    monkeypatch.setattr(settings, "FLOW_LOGS_ENABLED", False)

    with caplog.at_level(logging.INFO, logger="workorder.tests.flow"):
        flow_info(logger, "edit_session_loaded work_order_id=%s", 1, category="edit_session")
        flow_info(logger, "uncategorized")

    assert caplog.records == []


def test_env_value_parsers_fall_back_on_bad_input():
    assert config_module._as_bool(None, True) is True
    assert config_module._as_bool(" Yes ", False) is True
    assert config_module._as_float("abc", 15.0) == 15.0
    assert config_module._as_float("2.5", 15.0) == 2.5
    assert config_module._as_int("three", 2) == 2
    assert config_module._as_int(" 4 ", 2) == 4
