"""Order-level evidence from social activity.

Matches the people commenting on a post with the customers behind
orders, tells first-time customers apart, and checks whether an order's
products are named in a post caption. Records follow the shape of
commerce platform order exports (``customer``, ``billing_address``,
``line_items``).
"""

import logging
import re
import unicodedata
from collections.abc import Iterable
from typing import Any

import pandas as pd
from rapidfuzz import fuzz

from influencer_lift.data_providers.orders import clean_numeric_value
from influencer_lift.models.matching import (
    Buyer,
    Commenter,
    CommenterMatch,
    MatchSummary,
    ProductMention,
)

logger = logging.getLogger(__name__)

DEFAULT_MIN_SCORE = 60.0

# Discount on indirect evidence: usernames and email prefixes
USERNAME_FACTOR = 0.8
EMAIL_FACTOR = 0.7


def normalize_name(name: str) -> str:
    """Lowercase ASCII letters and digits separated by single spaces."""
    decomposed = unicodedata.normalize("NFKD", name or "")
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    cleaned = re.sub(r"[^a-z0-9\s]", "", stripped.lower())
    return re.sub(r"\s+", " ", cleaned).strip()


def name_similarity(first: str, second: str) -> float:
    """Similarity of two names in [0, 100]."""
    a, b = normalize_name(first), normalize_name(second)
    if not a or not b:
        return 0.0
    if a == b:
        return 100.0

    score = float(fuzz.token_sort_ratio(a, b))

    shorter, longer = sorted((a, b), key=len)
    if len(shorter) > 2 and shorter in longer:
        score = max(score, 80.0)

    common = {w for w in a.split() if len(w) > 2} & {w for w in b.split() if len(w) > 2}
    if common:
        score = max(score, min(100.0, 60.0 + 15.0 * len(common)))

    return score


def _match_type(score: float) -> str:
    if score >= 90:
        return "exact"
    if score >= 70:
        return "fuzzy"
    return "partial"


def match_commenter(
    commenter: Commenter, buyers: Iterable[Buyer], min_score: float = DEFAULT_MIN_SCORE
) -> CommenterMatch | None:
    """Best buyer for a commenter, or None below ``min_score``."""
    best: CommenterMatch | None = None
    best_score = 0.0

    for buyer in buyers:
        full_name_score = name_similarity(commenter.full_name, buyer.full_name)
        username_score = max(
            name_similarity(commenter.username, buyer.first_name),
            name_similarity(commenter.username, buyer.last_name),
            name_similarity(commenter.username, buyer.full_name.replace(" ", "")),
        )
        email_prefix = re.sub(r"[._]", " ", buyer.email.split("@")[0])
        email_score = name_similarity(commenter.full_name, email_prefix)

        score = max(
            full_name_score, username_score * USERNAME_FACTOR, email_score * EMAIL_FACTOR
        )
        if score > best_score and score >= min_score:
            best_score = score
            best = CommenterMatch(
                commenter_username=commenter.username,
                commenter_full_name=commenter.full_name,
                buyer_id=buyer.customer_id,
                buyer_name=buyer.full_name,
                order_id=buyer.order_id,
                order_total=buyer.order_total,
                order_date=buyer.order_date,
                match_score=round(score),
                match_type=_match_type(score),
            )

    return best


def match_commenters(
    commenters: Iterable[Commenter],
    buyers: list[Buyer],
    min_score: float = DEFAULT_MIN_SCORE,
) -> MatchSummary:
    """Match every commenter; each order is claimed at most once."""
    commenters = list(commenters)
    matches: list[CommenterMatch] = []
    claimed: set[str] = set()

    for commenter in commenters:
        available = [b for b in buyers if b.order_id not in claimed]
        match = match_commenter(commenter, available, min_score)
        if match:
            matches.append(match)
            claimed.add(match.order_id)

    logger.info(f"Matched {len(matches)} of {len(commenters)} commenters to orders")
    return MatchSummary(
        matches=matches,
        total_commenters=len(commenters),
        matched_count=len(matches),
        total_matched_revenue=sum(m.order_total for m in matches),
    )


def _email(order: dict[str, Any]) -> str:
    customer = order.get("customer") or {}
    return (customer.get("email") or order.get("email") or "").strip().lower()


def extract_buyers(orders: Iterable[dict[str, Any]]) -> list[Buyer]:
    """Buyers behind orders; anonymous orders are left out."""
    buyers = []
    for order in orders:
        customer = order.get("customer") or {}
        billing = order.get("billing_address") or {}
        first_name = customer.get("first_name") or billing.get("first_name") or ""
        last_name = customer.get("last_name") or billing.get("last_name") or ""
        if not (first_name or last_name):
            continue

        order_id = str(order.get("id", ""))
        buyers.append(
            Buyer(
                customer_id=str(customer.get("id") or order_id),
                first_name=first_name,
                last_name=last_name,
                email=_email(order),
                order_id=order_id,
                order_total=clean_numeric_value(order.get("total_price")) or 0.0,
                order_date=str(order.get("created_at") or ""),
            )
        )
    return buyers


def is_new_customer(order: dict[str, Any], orders: Iterable[dict[str, Any]]) -> bool:
    """True when no earlier order carries the same email.

    Orders without an email count as new.
    """
    email = _email(order)
    if not email:
        return True

    placed = pd.to_datetime(order.get("created_at"), utc=True, errors="coerce")
    if pd.isna(placed):
        return True

    for other in orders:
        if other is order or _email(other) != email:
            continue
        other_placed = pd.to_datetime(other.get("created_at"), utc=True, errors="coerce")
        if not pd.isna(other_placed) and other_placed < placed:
            return False
    return True


def product_mention(order: dict[str, Any], caption: str) -> ProductMention:
    """Which of an order's products a post caption names.

    A product counts as named when any word of its title longer than
    three letters appears in the caption.
    """
    if not caption:
        return ProductMention()

    text = caption.lower()
    line_items = order.get("line_items") or []
    matched = []
    for item in line_items:
        title = item.get("title") or ""
        keywords = [w for w in title.lower().split() if len(w) > 3]
        if any(keyword in text for keyword in keywords):
            matched.append(title)

    return ProductMention(
        matches=bool(matched),
        matched_products=matched,
        confidence=min(1.0, len(matched) / len(line_items)) if matched else 0.0,
    )
