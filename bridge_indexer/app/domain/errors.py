from __future__ import annotations


class BridgeIndexerError(Exception):
    """Base class for errors raised by the collector."""


class InvalidAddressError(BridgeIndexerError, ValueError):
    """An address does not have the expected L1 (20-byte) or L2 (32-byte) form."""


class MissingChainDataError(BridgeIndexerError, RuntimeError):
    """
    A block or transaction effect referenced by a log is missing on the node.

    The node is serving an inconsistent view; the current cycle must be aborted
    without advancing the block cursor.
    """


class RollupNodeError(BridgeIndexerError, RuntimeError):
    """The rollup node answered a JSON-RPC call with an error object."""


class TokenMetadataFetchError(BridgeIndexerError):
    """ERC-20 name/symbol/decimals could not be read from the base chain."""
