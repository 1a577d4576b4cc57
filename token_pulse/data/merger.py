"""
TOKEN PULSE — Multi-Source Token Merger
Combines per-source record lists into one set keyed by token address.

Conflict policy: the record with the strictly higher volume_sol wins; ties
keep whichever record was seen first. Records are never field-merged, so a
sparse record can lose to a richer one even where it carried a better price.
Output order is the mapping's insertion order and carries no meaning.
"""
from typing import Dict, Iterable, List

from token_pulse.data.models import TokenRecord


def _fold_into(by_address: Dict[str, TokenRecord], records: Iterable[TokenRecord]) -> None:
    for record in records:
        existing = by_address.get(record.token_address)
        if existing is None or record.volume_sol > existing.volume_sol:
            by_address[record.token_address] = record


def merge_tokens(source_a: List[TokenRecord], source_b: List[TokenRecord]) -> List[TokenRecord]:
    """Merge two record lists, source_a first. Pure; inputs are not modified."""
    by_address: Dict[str, TokenRecord] = {}
    _fold_into(by_address, source_a)
    _fold_into(by_address, source_b)
    return list(by_address.values())


def merge_all(*sources: List[TokenRecord]) -> List[TokenRecord]:
    """Left-to-right fold of merge_tokens across any number of sources."""
    merged: List[TokenRecord] = []
    for source in sources:
        merged = merge_tokens(merged, source)
    return merged


def dedupe_tokens(records: List[TokenRecord]) -> List[TokenRecord]:
    """Collapse duplicate addresses within one list using the same policy."""
    return merge_tokens(records, [])
