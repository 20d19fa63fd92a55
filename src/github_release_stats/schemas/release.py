"""Pydantic schemas for validated release data."""

import hashlib
import json
from datetime import UTC, datetime
from typing import Self

from pydantic import Field, field_validator, model_validator

from .base import FrozenSchema


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class ReleaseAuthor(FrozenSchema):
    """Author of a release."""

    login: str = Field(min_length=1, description="GitHub username")
    avatar_url: str = Field(default="", description="Avatar image URL")
    url: str = Field(default="", description="Profile URL")


class Release(FrozenSchema):
    """A single validated, sanitized repository release.

    Identity is the GitHub release ``id``. Instances are immutable; the
    sanitizer produces a copy rather than editing one in place.
    """

    id: int = Field(description="GitHub release ID")
    tag_name: str = Field(min_length=1, description="Git tag (e.g., 'v1.2.0')")
    name: str | None = Field(default=None, description="Display name")
    body: str | None = Field(default=None, description="Release notes (markdown)")
    published_at: datetime = Field(description="Publication time (UTC)")
    created_at: datetime = Field(description="Creation time (UTC)")
    draft: bool = Field(default=False)
    prerelease: bool = Field(default=False)
    author: ReleaseAuthor
    html_url: str | None = None
    zipball_url: str | None = None
    tarball_url: str | None = None
    asset_download_urls: tuple[str, ...] = ()

    @field_validator("published_at", "created_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return _to_utc(value)

    @property
    def is_final(self) -> bool:
        """Whether this is a published, non-prerelease release."""
        return not self.draft and not self.prerelease


class ReleaseQueryOptions(FrozenSchema):
    """Options controlling which releases a fetch returns.

    Part of the cache key: two fetches with different options never share
    an entry. Date bounds are inclusive and compared in UTC.
    """

    include_drafts: bool = Field(default=False, description="Keep draft releases")
    include_prereleases: bool = Field(default=True, description="Keep prereleases")
    published_after: datetime | None = Field(
        default=None, description="Drop releases published before this time"
    )
    published_before: datetime | None = Field(
        default=None, description="Drop releases published after this time"
    )
    exclude_future: bool = Field(
        default=True, description="Drop releases dated after the time of the fetch"
    )

    @field_validator("published_after", "published_before")
    @classmethod
    def _bound_as_utc(cls, value: datetime | None) -> datetime | None:
        return _to_utc(value) if value is not None else None

    @model_validator(mode="after")
    def _check_date_range(self) -> Self:
        if (
            self.published_after is not None
            and self.published_before is not None
            and self.published_after > self.published_before
        ):
            raise ValueError("published_after must not be later than published_before")
        return self

    def fingerprint(self) -> str:
        """Deterministic hash of these options, stable across processes."""
        canonical = json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def accepts(self, release: Release, now: datetime | None = None) -> bool:
        """Whether a release passes the type and date filters.

        Args:
            release: Release to check
            now: Time of the fetch; future-dated releases are only dropped
                when it is given

        Returns:
            True if the release should be kept
        """
        if release.draft and not self.include_drafts:
            return False
        if release.prerelease and not self.include_prereleases:
            return False
        published = release.published_at
        if self.published_after is not None and published < self.published_after:
            return False
        if self.published_before is not None and published > self.published_before:
            return False
        return not (self.exclude_future and now is not None and published > now)
