"""
TOKEN PULSE — Token Query Service
Serves the token listing: snapshot or live search, then sort and paginate.

The cursor is a plain integer offset into a list that is re-sorted on every
request. The snapshot is replaced every refresh tick, so a follow-up page can
skip or repeat rows relative to the previous page.
"""
from typing import Dict, List, Optional

from token_pulse.config.settings import get_settings
from token_pulse.data.adapters.base import BaseSourceAdapter
from token_pulse.data.cache.token_cache import TokenCache, TOKENS_ALL_KEY, search_key
from token_pulse.data.models import TokenPage, TokenRecord, records_from_dicts, records_to_dicts
from token_pulse.utils.helpers import parse_int
from token_pulse.utils.logger import get_logger

logger = get_logger("query_service")

SORTABLE_FIELDS = (
    "market_cap_sol",
    "volume_sol",
    "price_1hr_change",
    "price_24hr_change",
    "price_7d_change",
)

DEFAULT_SORT_FIELD = "volume_sol"

SORT_ALIASES: Dict[str, str] = {
    "market_cap": "market_cap_sol",
    "volume": "volume_sol",
    "change_1h": "price_1hr_change",
    "change_24h": "price_24hr_change",
    "change_7d": "price_7d_change",
}


def resolve_sort_field(sort_by: Optional[str]) -> Optional[str]:
    """Map a requested field to a sortable attribute, or None if not allowed."""
    if not sort_by:
        return None
    field = SORT_ALIASES.get(sort_by, sort_by)
    return field if field in SORTABLE_FIELDS else None


def sort_tokens(records: List[TokenRecord], sort_by: Optional[str]) -> List[TokenRecord]:
    """Descending, stable sort on an allow-listed field; anything else keeps source order."""
    field = resolve_sort_field(sort_by)
    if field is None:
        return list(records)
    return sorted(records, key=lambda r: getattr(r, field, None) or 0, reverse=True)


def paginate(records: List[TokenRecord], limit: int, offset: int) -> TokenPage:
    start = max(offset, 0)
    end = start + limit
    page = records[start:end]
    next_cursor = str(end) if end < len(records) else None
    return TokenPage(data=page, next_cursor=next_cursor)


class TokenQueryService:
    """Read side of the pipeline. Never writes the canonical snapshot."""

    def __init__(
        self,
        cache: TokenCache,
        search_source: BaseSourceAdapter,
        search_ttl_seconds: Optional[int] = None,
        default_limit: Optional[int] = None,
    ):
        settings = get_settings()
        self.cache = cache
        self.search_source = search_source
        self.search_ttl_seconds = (
            search_ttl_seconds if search_ttl_seconds is not None else settings.cache.search_ttl_seconds
        )
        self.default_limit = default_limit if default_limit is not None else settings.default_page_size

    async def _search(self, query: str) -> List[TokenRecord]:
        key = search_key(query)
        cached = await self.cache.get(key)
        if cached is not None:
            return records_from_dicts(cached)

        records = await self.search_source.fetch(query)
        await self.cache.set(key, records_to_dicts(records), self.search_ttl_seconds)
        logger.info("search_cached", query=query, count=len(records))
        return records

    async def load_tokens(self, q: Optional[str] = None) -> List[TokenRecord]:
        if q:
            return await self._search(q)
        # Cold start: nothing cached yet is an empty list, not an error
        return records_from_dicts(await self.cache.get(TOKENS_ALL_KEY))

    async def list_tokens(
        self,
        sort_by: Optional[str] = None,
        limit: Optional[str] = None,
        cursor: Optional[str] = None,
        q: Optional[str] = None,
    ) -> TokenPage:
        tokens = await self.load_tokens(q)
        if not tokens:
            return TokenPage()

        page_size = parse_int(limit, self.default_limit)
        if page_size < 1:
            page_size = self.default_limit
        offset = max(parse_int(cursor, 0), 0)

        if sort_by is None:
            sort_by = DEFAULT_SORT_FIELD

        return paginate(sort_tokens(tokens, sort_by), page_size, offset)
