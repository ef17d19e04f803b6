from bridge_indexer.app.infrastructure.db.models.block_progress import BlockProgressDB
from bridge_indexer.app.infrastructure.db.models.contracts import (
    ContractArtifactsDB,
    ContractInstancesDB,
)
from bridge_indexer.app.infrastructure.db.models.tokens import TokensDB

__all__ = [
    "BlockProgressDB",
    "ContractArtifactsDB",
    "ContractInstancesDB",
    "TokensDB",
]
