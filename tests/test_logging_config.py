import logging

import pytest

from core.logging_config import current_stage, log_stage, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_debug_file_receives_debug_records(tmp_path, restore_root_logger):
    log_file = tmp_path / "logs" / "snapshot.log"

    setup_logging(debug=False, log_file=str(log_file), console_output=False)
    logging.getLogger("snapshot.parser").debug("Duplicate account alice")
    for handler in restore_root_logger.handlers:
        handler.flush()

    assert "Duplicate account alice" in log_file.read_text()


def test_console_level_follows_debug_flag(restore_root_logger):
    setup_logging(debug=False)
    assert [h.level for h in restore_root_logger.handlers] == [logging.INFO]

    setup_logging(debug=True)
    assert [h.level for h in restore_root_logger.handlers] == [logging.DEBUG]
    assert logging.getLogger("httpx").level == logging.WARNING


def test_mismatch_log_keeps_only_findings(tmp_path, restore_root_logger):
    mismatch_log = tmp_path / "mismatches.log"

    setup_logging(mismatch_log_file=str(mismatch_log), console_output=False)
    logging.getLogger("reconciliation.validator").error("Account: alice did not have expected balance")
    logging.getLogger("reconciliation.validator").info("Checked 1000 out of 2000 accounts")
    logging.getLogger("ledger.client").error("Timed out calling http://node")
    for handler in restore_root_logger.handlers:
        handler.flush()

    lines = mismatch_log.read_text().splitlines()
    assert len(lines) == 1
    assert "alice did not have expected balance" in lines[0]


def test_debug_log_tags_run_stage(tmp_path, restore_root_logger):
    log_file = tmp_path / "debug.log"

    setup_logging(log_file=str(log_file), console_output=False)
    with log_stage("validate"):
        assert current_stage() == "validate"
        logging.getLogger("reconciliation.validator").debug("validating alice")
    assert current_stage() is None
    for handler in restore_root_logger.handlers:
        handler.flush()

    assert "[validate] reconciliation.validator:" in log_file.read_text()
