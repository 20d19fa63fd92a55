"""Repository identifier parsing."""

import re
from urllib.parse import urlparse

from pydantic import Field

from .base import FrozenSchema

REPO_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+/[a-zA-Z0-9_.-]+$")


class RepositoryRef(FrozenSchema):
    """An owner/name pair identifying a GitHub repository."""

    owner: str = Field(max_length=100, description="GitHub org or user (e.g., 'facebook')")
    name: str = Field(max_length=100, description="Repository name (e.g., 'react')")

    @property
    def full_name(self) -> str:
        """Full repository path (e.g., 'facebook/react')."""
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, value: str) -> "RepositoryRef":
        """
        Factory method to create from user input.

        Args:
            value: 'owner/repo' or a GitHub URL

        Returns:
            RepositoryRef instance
        """
        owner, name = parse_repo_string(value)
        return cls(owner=owner, name=name)


def extract_repo_from_input(value: str) -> str:
    """Reduce user input to an 'owner/repo' candidate string.

    Accepts:
        - owner/repo
        - https://github.com/owner/repo
        - https://github.com/owner/repo/releases
        - github.com/owner/repo
        - www.github.com/owner/repo

    Input that is not a recognizable GitHub URL is returned trimmed and
    lowercased, unchanged otherwise.
    """
    trimmed = value.strip()
    if "github.com" not in trimmed and not trimmed.startswith("http"):
        return trimmed.lower()

    url = trimmed if trimmed.startswith(("http://", "https://")) else f"https://{trimmed}"
    parsed = urlparse(url)
    if "github.com" not in (parsed.hostname or ""):
        return trimmed.lower()

    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) >= 2:
        repo = parts[1].removesuffix(".git")
        return f"{parts[0]}/{repo}".lower()
    return trimmed.lower()


def parse_repo_string(value: str) -> tuple[str, str]:
    """Parse repository input into (owner, name).

    Args:
        value: 'owner/repo' or a GitHub URL

    Returns:
        Tuple of (owner, name), lowercased

    Raises:
        ValueError: If the input does not identify a repository
    """
    if not value.strip():
        raise ValueError("Enter a repository name")

    candidate = extract_repo_from_input(value)
    if not REPO_PATTERN.match(candidate):
        raise ValueError("Use format: owner/repo or paste GitHub URL")

    owner, name = candidate.split("/", 1)
    return owner, name
