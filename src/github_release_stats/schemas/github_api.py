"""Pydantic schemas for parsing GitHub API responses.

These schemas map directly to the GitHub REST API response structure.
See: https://docs.github.com/en/rest/releases/releases
"""

from datetime import datetime
from typing import Self

from pydantic import BaseModel, Field, model_validator

from .release import Release, ReleaseAuthor


class GitHubReleaseAuthor(BaseModel):
    """GitHub user object embedded in a release."""

    login: str = Field(min_length=1, description="GitHub username")
    id: int | None = Field(default=None, description="GitHub user ID")
    avatar_url: str = Field(default="", description="Avatar image URL")
    html_url: str = Field(default="", description="Profile page URL")


class GitHubReleaseAsset(BaseModel):
    """Uploaded release asset."""

    name: str = Field(default="", description="Asset file name")
    browser_download_url: str = Field(description="Public download URL")


class GitHubRelease(BaseModel):
    """GitHub Release object from API.

    Maps to: GET /repos/{owner}/{repo}/releases
    """

    id: int = Field(description="Release ID")
    tag_name: str = Field(min_length=1, description="Git tag")
    name: str | None = Field(default=None, description="Release title")
    body: str | None = Field(default=None, description="Release notes")
    draft: bool = Field(default=False)
    prerelease: bool = Field(default=False)
    created_at: datetime = Field(description="When the release object was created")
    published_at: datetime | None = Field(
        default=None, description="When published (null for drafts)"
    )
    author: GitHubReleaseAuthor
    html_url: str | None = None
    zipball_url: str | None = None
    tarball_url: str | None = None
    assets: list[GitHubReleaseAsset] = Field(default_factory=list)

    @model_validator(mode="after")
    def _require_publication_date(self) -> Self:
        if self.published_at is None and not self.draft:
            raise ValueError("published release is missing published_at")
        return self

    def to_release(self) -> Release:
        """
        Convert to the internal Release model.

        Drafts have no publication date yet; their creation date stands in
        so every Release can be placed on the timeline.

        Returns:
            Release instance
        """
        return Release(
            id=self.id,
            tag_name=self.tag_name,
            name=self.name,
            body=self.body,
            published_at=self.published_at or self.created_at,
            created_at=self.created_at,
            draft=self.draft,
            prerelease=self.prerelease,
            author=ReleaseAuthor(
                login=self.author.login,
                avatar_url=self.author.avatar_url,
                url=self.author.html_url,
            ),
            html_url=self.html_url,
            zipball_url=self.zipball_url,
            tarball_url=self.tarball_url,
            asset_download_urls=tuple(a.browser_download_url for a in self.assets),
        )
