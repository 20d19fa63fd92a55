"""Test fixtures: fake clocks, GitHub release payloads and rate limit headers."""
