"""
TOKEN PULSE — Data Models for Token Market Data
Canonical data structures used across the entire pipeline.

Sources that cannot supply a field report it as 0. A reported 0 is therefore
indistinguishable from a genuine zero; consumers must not read it as "missing".
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any
from enum import Enum


class DataSource(str, Enum):
    DEXSCREENER = "dexscreener"
    JUPITER = "jupiter"


class TokenRecord(BaseModel):
    """One token's reconciled market data. Replaced wholesale, never mutated."""
    model_config = ConfigDict(frozen=True)

    token_address: str
    token_name: str = ""
    token_ticker: str = ""
    price_sol: float = Field(default=0.0, ge=0)
    market_cap_sol: float = Field(default=0.0, ge=0)
    volume_sol: float = Field(default=0.0, ge=0)
    liquidity_sol: float = Field(default=0.0, ge=0)
    transaction_count: int = Field(default=0, ge=0)
    price_1hr_change: float = 0.0
    price_24hr_change: float = 0.0
    price_7d_change: float = 0.0
    protocol: DataSource

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON / cache / WebSocket transmission."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenRecord":
        return cls.model_validate(data)


class TokenPage(BaseModel):
    """One page of the token listing."""
    model_config = ConfigDict(populate_by_name=True)

    data: List[TokenRecord] = Field(default_factory=list)
    next_cursor: Optional[str] = Field(default=None, alias="nextCursor")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": [record.to_dict() for record in self.data],
            "nextCursor": self.next_cursor,
        }


def records_to_dicts(records: List[TokenRecord]) -> List[Dict[str, Any]]:
    return [record.to_dict() for record in records]


def records_from_dicts(items: Optional[List[Dict[str, Any]]]) -> List[TokenRecord]:
    """Rebuild records from a cached snapshot. None (cache miss) yields []."""
    if not items:
        return []
    return [TokenRecord.from_dict(item) for item in items]
