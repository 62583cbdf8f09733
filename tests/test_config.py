import pytest

from config import RunOptions
from core.exceptions import ConfigurationError, ErrorCode


def test_inject_requires_private_key(snapshot_file):
    options = RunOptions(inject=True, snapshot_input=str(snapshot_file))

    with pytest.raises(ConfigurationError) as exc_info:
        options.validate_options()

    assert exc_info.value.error_code == ErrorCode.CONFIGURATION_ERROR
    assert "private key" in str(exc_info.value)


def test_no_mode_selected(snapshot_file):
    with pytest.raises(ConfigurationError, match="No mode selected"):
        RunOptions(snapshot_input=str(snapshot_file)).validate_options()


def test_missing_input_file(tmp_path):
    options = RunOptions(validate=True, snapshot_input=str(tmp_path / "absent.csv"))

    with pytest.raises(ConfigurationError, match="not found"):
        options.validate_options()


def test_write_csv_requires_output(snapshot_file):
    options = RunOptions(write_csv=True, snapshot_input=str(snapshot_file), snapshot_output="")

    with pytest.raises(ConfigurationError, match="output path"):
        options.validate_options()


def test_stake_without_validate_only_warns(snapshot_file, caplog):
    options = RunOptions(write_csv=True, validate_stake=True, snapshot_input=str(snapshot_file))

    options.validate_options()

    assert any("validate_stake" in r.getMessage() for r in caplog.records)


def test_private_key_masked(snapshot_file):
    options = RunOptions(inject=True, private_key="5Ksecret", snapshot_input=str(snapshot_file))

    assert options.to_dict()["private_key"] == "***"
    assert "5Ksecret" not in repr(options)
