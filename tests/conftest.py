"""
Pytest Configuration for Arca Vault Metrics Tests

Run all tests: python -m pytest tests/ -v
Run unit tests only: python -m pytest tests/ -v -m "not integration"
Run integration tests: python -m pytest tests/ -v -m integration
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from arca_metrics.data_sources.vault_registry import VaultIdentity, VaultRegistry
from arca_metrics.infrastructure.errors import error_tracker
from arca_metrics.infrastructure.local_storage import LocalStorage
from arca_metrics.services.cache_manager import CacheManager


# =============================================================================
# FIXTURES - Shared across all test files
# =============================================================================

@pytest.fixture
def test_addresses():
    """Standard test addresses on Sonic"""
    return {
        "metro_vault": "0xF5708969da13879d7A6D2F21d0411BF9eEB045E9",
        "metro_strategy": "0x20302bc08CcaAFB039916e4a06f0B3917506019a",
        "metro_book": "0x32c0D87389E72E46b54bc4Ea6310C1a0e921C4DC",
        "shadow_vault": "0x727e6D1FF1f1836Bb7Cdfad30e89EdBbef878ab5",
        "shadow_strategy": "0x64efeA2531f2b1A3569555084B88bb5714f5286c",
        "shadow_pool": "0x324963c267C354c7660Ce8CA3F5f167E05649970",
        "user": "0xa30A689ec0F9D717C5bA1098455B031b868B720f",
        "unknown": "0x000000000000000000000000000000000000dEaD",
    }


@pytest.fixture
def storage():
    """Throwaway in-memory store"""
    store = LocalStorage(":memory:")
    yield store
    store.close()


@pytest.fixture
def cache_manager(storage):
    return CacheManager(storage)


@pytest.fixture
def metro_vault(test_addresses):
    return VaultIdentity.create(
        name="S • USDC | Metropolis",
        vault_address=test_addresses["metro_vault"],
        strategy_address=test_addresses["metro_strategy"],
        book_address=test_addresses["metro_book"],
        token_x="S",
        token_y="USDC",
    )


@pytest.fixture
def shadow_vault(test_addresses):
    return VaultIdentity.create(
        name="wS • USDC | Shadow",
        vault_address=test_addresses["shadow_vault"],
        strategy_address=test_addresses["shadow_strategy"],
        pool_address=test_addresses["shadow_pool"],
        token_x="WS",
        token_y="USDC",
    )


@pytest.fixture
def unsupported_vault():
    return VaultIdentity.create(
        name="S • USDC | Pancake",
        vault_address="0x1111111111111111111111111111111111111111",
        strategy_address="0x2222222222222222222222222222222222222222",
    )


@pytest.fixture
def registry(metro_vault, shadow_vault):
    return VaultRegistry([metro_vault, shadow_vault])


@pytest.fixture
def mock_reader():
    """ContractReader stand-in; set side_effect per test"""
    reader = MagicMock()
    reader.call = AsyncMock()
    return reader


@pytest.fixture(autouse=True)
def reset_error_tracker():
    error_tracker.clear()
    yield
    error_tracker.clear()


# =============================================================================
# MARKERS
# =============================================================================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (use real APIs)"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running"
    )
