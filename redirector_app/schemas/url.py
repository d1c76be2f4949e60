import re
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel


ALIAS_PATTERN = re.compile(r"[A-Za-z0-9_-]+")

_http_url = TypeAdapter(HttpUrl)


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON keys"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class URLCreate(CamelModel):
    original_url: str = Field(..., description="The original URL to be shortened, e.g. https://example.com")

    @field_validator("original_url", mode="before")
    @classmethod
    def validate_url(cls, value):
        # Validate as an http(s) URL but store the string the caller sent
        if not isinstance(value, str):
            raise ValueError("Must be a string!")
        try:
            _http_url.validate_python(value)
        except ValidationError:
            raise ValueError("Invalid URL.")
        return value


class AliasUpdate(CamelModel):
    alias: str = Field(..., min_length=1, max_length=64, description="User-chosen alias")
    rate_limit: Optional[int] = Field(None, ge=0, description="Maximum redirects; 0 or null disables the limit")

    @field_validator("alias")
    @classmethod
    def validate_alias(cls, value: str) -> str:
        if not ALIAS_PATTERN.fullmatch(value):
            raise ValueError("Alias may only contain letters, digits, '-' and '_'")
        return value


class VisitDetail(CamelModel):
    agent: Optional[str] = None
    referer: Optional[str] = None
    accessed_at: datetime


class IpStats(CamelModel):
    count: int
    result: List[VisitDetail]


class URLWithStats(CamelModel):
    """
    One URL record joined with its per-IP visit summary.

    The service fills short_url/alias with bare codes; the router replaces
    them with fully-qualified URLs before responding.
    """
    original_url: str
    short_url: str
    alias: Optional[str] = None
    access_count: int
    deleted: bool
    rate_limit: Optional[int] = None
    stats: Dict[str, IpStats] = Field(default_factory=dict)
