from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BlockRange:
    from_block: int
    to_block: int

    def validate(self) -> None:
        if self.from_block < 0 or self.to_block < 0:
            raise ValueError("Block numbers must be non-negative")
        if self.from_block > self.to_block:
            raise ValueError("from_block must be <= to_block")


def next_block_window(
    *,
    last_scanned_block: int,
    head_block: int,
    chunk_size: int,
    start_block: int = 0,
    force_start_block: int | None = None,
) -> BlockRange | None:
    """
    Next inclusive window to scan, or None when the chain has no new blocks.

    - from_block = force_start_block when given, else start_block while the
      cursor is still 0, else last_scanned_block + 1
    - to_block   = min(from_block + chunk_size - 1, head_block)
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    if force_start_block is not None:
        from_block = force_start_block
    elif last_scanned_block == 0 and start_block > 0:
        from_block = start_block
    else:
        from_block = last_scanned_block + 1

    to_block = min(from_block + chunk_size - 1, head_block)
    if to_block < from_block:
        return None

    block_range = BlockRange(from_block=from_block, to_block=to_block)
    block_range.validate()
    return block_range
