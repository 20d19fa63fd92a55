"""Pydantic schemas for GitHub Release Stats.

This module provides input validation and output serialization models.
"""

from .base import FrozenSchema, SchemaBase
from .github_api import GitHubRelease, GitHubReleaseAsset, GitHubReleaseAuthor
from .release import Release, ReleaseAuthor, ReleaseQueryOptions
from .repository import RepositoryRef, extract_repo_from_input, parse_repo_string

__all__ = [
    # Base
    "FrozenSchema",
    "SchemaBase",
    # GitHub API
    "GitHubRelease",
    "GitHubReleaseAsset",
    "GitHubReleaseAuthor",
    # Releases
    "Release",
    "ReleaseAuthor",
    "ReleaseQueryOptions",
    # Repository
    "RepositoryRef",
    "extract_repo_from_input",
    "parse_repo_string",
]
