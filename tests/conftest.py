"""Pytest configuration and shared fixtures for all tests."""

import os

# Minimal environment for Settings; must be set before bridge_indexer.app.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("L1_RPC_URL", "http://localhost:8545")
os.environ.setdefault("L1_PORTAL_ADDRESS", "0x1111111111111111111111111111111111111111")
os.environ.setdefault("L1_ALLOW_LIST_ADDRESS", "0x2222222222222222222222222222222222222222")
os.environ.setdefault("L1_INBOX_ADDRESS", "0x3333333333333333333333333333333333333333")
os.environ.setdefault("L2_NODE_URL", "http://localhost:8080")
os.environ.setdefault(
    "L2_PORTAL_ADDRESS",
    "0x00000000000000000000000000000000000000000000000000000000000000aa",
)

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from bridge_indexer.app.domain.models import TokenMetadata
from bridge_indexer.app.infrastructure.crypto.contract_instance import TokenContractInstanceDeriver
from bridge_indexer.app.infrastructure.crypto.field_hasher import Poseidon2FieldHasher
from bridge_indexer.app.infrastructure.db import models  # noqa: F401
from bridge_indexer.app.infrastructure.db.db_base import BaseDB


@pytest_asyncio.fixture
async def engine(tmp_path):
    """SQLite engine with all tables created; one database file per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'bridge.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(BaseDB.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def hasher():
    return Poseidon2FieldHasher()


@pytest.fixture
def deriver(hasher):
    return TokenContractInstanceDeriver.from_path(hasher=hasher)


@pytest.fixture
def usdc_metadata():
    return TokenMetadata(name="USD Coin", symbol="USDC", decimals=6)
