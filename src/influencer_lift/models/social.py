"""Social-side data models."""

from datetime import datetime
from enum import Enum

from pydantic import Field, field_serializer

from influencer_lift.models.base import BaseLiftModel


class ContentType(str, Enum):
    """Kind of social content; drives the detection window length."""

    POST = "post"
    REEL = "reel"
    STORY = "story"
    VIDEO = "video"


class InfluencerPost(BaseLiftModel):
    """A single piece of influencer content."""

    post_id: str = Field(..., min_length=1)
    influencer_id: str = Field(..., min_length=1)
    username: str = ""
    timestamp: datetime = Field(..., description="Publication time")
    content_type: ContentType = ContentType.POST
    audience_size: int = Field(default=0, ge=0, description="Followers or reach")
    engagement_rate: float | None = Field(
        default=None, ge=0.0, description="Average engagement rate in percent"
    )
    promo_code: str | None = Field(
        default=None, description="Personal discount code, if the influencer has one"
    )

    @field_serializer("timestamp")
    def serialize_timestamp(self, dt: datetime) -> str:
        return dt.isoformat()
