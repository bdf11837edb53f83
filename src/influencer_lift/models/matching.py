"""Commenter to buyer matching models."""

from typing import Literal

from pydantic import Field

from influencer_lift.models.base import BaseLiftModel


class Commenter(BaseLiftModel):
    """Someone who commented on an influencer post."""

    username: str
    full_name: str = ""


class Buyer(BaseLiftModel):
    """The customer behind one order."""

    customer_id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    order_id: str
    order_total: float = 0.0
    order_date: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class CommenterMatch(BaseLiftModel):
    """Best buyer found for a commenter."""

    commenter_username: str
    commenter_full_name: str = ""
    buyer_id: str
    buyer_name: str
    order_id: str
    order_total: float
    order_date: str = ""
    match_score: int = Field(..., ge=0, le=100)
    match_type: Literal["exact", "fuzzy", "partial"]


class MatchSummary(BaseLiftModel):
    """Matches for every commenter of a post."""

    matches: list[CommenterMatch] = Field(default_factory=list)
    total_commenters: int = 0
    matched_count: int = 0
    total_matched_revenue: float = 0.0


class ProductMention(BaseLiftModel):
    """Products of an order whose names appear in a post caption."""

    matches: bool = False
    matched_products: list[str] = Field(default_factory=list)
    confidence: float = Field(0.0, ge=0.0, le=1.0)
