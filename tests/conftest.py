# tests/conftest.py - Pytest configuration and fixtures

from decimal import Decimal

import pytest
from unittest.mock import AsyncMock

from factories import live_for, snapshot_line


@pytest.fixture
def snapshot_file(tmp_path):
    """Five-account snapshot, file order unsorted; total balance 60.0000."""
    path = tmp_path / "snapshot.csv"
    path.write_text("\n".join([
        snapshot_line("carol", "10.0000", "5.0000"),
        snapshot_line("alice", "20.0000", "0.0000", permissions="owner:alice@owner;active:alice@active"),
        snapshot_line("bob", "0.0000", "0.0000"),
        snapshot_line("dave", "", ""),
        snapshot_line("erin", "10.0000", "5.0000"),
    ]) + "\n")
    return path


# Mock fixtures
@pytest.fixture
def mock_ledger():
    """Mock ledger client; get_account is wired per test."""
    ledger = AsyncMock()
    ledger.get_token_supply = AsyncMock(return_value=Decimal("60.0000"))
    ledger.transact = AsyncMock(return_value={"transaction_id": "abc"})
    ledger.get_account = AsyncMock()
    return ledger


@pytest.fixture
def agreeing_ledger(mock_ledger):
    """Mock ledger whose live state matches a given account model."""
    def _bind(model):
        async def _get_account(name):
            return live_for(model[name])
        mock_ledger.get_account = AsyncMock(side_effect=_get_account)
        return mock_ledger
    return _bind


# Configure pytest
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "asyncio: async tests")
    config.addinivalue_line("markers", "integration: integration tests")
