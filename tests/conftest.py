"""
Shared fixtures for the ingestion tests
"""

import pytest

from src.services.ingestion_pipeline import IngestionPipeline
from src.services.secret_store import CachedSecret, StaticSecretProvider

from tests.helpers import FIXED_NOW_MS, TEST_SECRET, InMemorySink


@pytest.fixture
def memory_sink():
    return InMemorySink()


@pytest.fixture
def cached_secret():
    return CachedSecret(StaticSecretProvider(TEST_SECRET), "/github/metrics/secret-token")


@pytest.fixture
def pipeline(cached_secret, memory_sink):
    return IngestionPipeline(
        secret=cached_secret,
        sink=memory_sink,
        clock=lambda: FIXED_NOW_MS,
    )


@pytest.fixture
def push_payload():
    """Representative push delivery"""
    return {
        "ref": "refs/heads/main",
        "before": "000",
        "after": "abc123",
        "created": False,
        "deleted": False,
        "forced": False,
        "base_ref": None,
        "compare": "https://github.com/octo-org/hello-world/compare/000...abc123",
        "commits": [{"id": "abc123"}, {"id": "def456"}],
        "head_commit": {"id": "abc123", "timestamp": "2024-03-01T12:00:00Z"},
        "pusher": {"name": "alice", "email": "alice@example.com"},
        "repository": {"id": 1296269, "name": "hello-world", "full_name": "octo-org/hello-world"},
        "organization": {"id": 9919, "login": "octo-org"},
        "sender": {"id": 583231, "login": "alice"},
    }


@pytest.fixture
def pull_request_payload():
    """Representative pull_request delivery"""
    return {
        "action": "closed",
        "number": 42,
        "pull_request": {
            "id": 1001,
            "number": 42,
            "state": "closed",
            "title": "Add metrics",
            "draft": False,
            "locked": False,
            "merged": True,
            "merged_at": "2024-03-02T10:00:00Z",
            "closed_at": "2024-03-02T10:00:00Z",
            "created_at": "2024-03-01T09:00:00Z",
            "updated_at": "2024-03-02T10:00:00Z",
            "user": {"login": "alice", "id": 583231},
            "assignee": None,
            "assignees": [],
            "requested_reviewers": [{"login": "bob", "id": 2}],
            "labels": [{"name": "enhancement", "id": 11}],
            "head": {"ref": "feature", "sha": "abc123"},
            "base": {"ref": "main", "sha": "000"},
            "auto_merge": None,
            "merge_commit_sha": "fff111",
            "author_association": "MEMBER",
            "commits": 3,
            "additions": 120,
            "deletions": 0,
            "changed_files": 4,
            "comments": 1,
            "review_comments": 2,
        },
        "repository": {"id": 1296269, "name": "hello-world", "full_name": "octo-org/hello-world"},
        "sender": {"id": 583231, "login": "alice"},
    }
