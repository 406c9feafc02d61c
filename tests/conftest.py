"""
Shared fixtures: a small release timeline, ticket/commit factories and a fake Jira session.
"""

import sys
from datetime import date
from pathlib import Path

import pytest
import requests

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from bug_lineage.models import CommitInfo, Release, Ticket
from bug_lineage.releases import ReleaseTimeline


R1 = Release(id='1', name='1.0.0', release_date=date(2020, 1, 1), released=True)
R2 = Release(id='2', name='2.0.0', release_date=date(2020, 6, 1), released=True)
R3 = Release(id='3', name='3.0.0', release_date=date(2021, 1, 1), released=True)


@pytest.fixture
def releases():
    return [R1, R2, R3]


@pytest.fixture
def timeline(releases):
    return ReleaseTimeline(releases)


@pytest.fixture
def make_ticket():
    def _make(key='PROJ-1', issue_date=date(2020, 3, 1), **kwargs):
        return Ticket(id=key.split('-')[-1], key=key, issue_date=issue_date,
                      closed_date=kwargs.pop('closed_date', issue_date), **kwargs)
    return _make


@pytest.fixture
def make_commit():
    counter = {'n': 0}

    def _make(message, commit_date=date(2020, 5, 1), commit_id=None):
        counter['n'] += 1
        return CommitInfo(
            commit_id=commit_id or f'c{counter["n"]:04d}',
            author_name='Dev',
            author_email='dev@example.org',
            commit_date=commit_date,
            message=message,
        )
    return _make


# =============================================================================
# FAKE JIRA
# =============================================================================

class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        return self.payload


class FakeSession:
    """Returns queued payloads per URL suffix and records every call"""

    def __init__(self, routes):
        # routes: {'search': [page1, page2], 'project/PROJ/versions': [listing]}
        self.routes = {k: list(v) for k, v in routes.items()}
        self.calls = []
        self.headers = {}

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, dict(params or {})))
        for suffix, queue in self.routes.items():
            if url.endswith(suffix):
                item = queue.pop(0)
                if isinstance(item, Exception):
                    raise item
                if isinstance(item, FakeResponse):
                    return item
                return FakeResponse(item)
        return FakeResponse({}, status_code=404)


@pytest.fixture
def fake_session():
    return FakeSession


def issue_json(key, created='2020-03-01T10:00:00.000+0000', resolutiondate='2020-07-01T10:00:00.000+0000',
               updated='2020-07-02T10:00:00.000+0000', fix_ids=(), affected_ids=(),
               issuetype='Bug', status='Closed', resolution='Fixed', assignee='dev'):
    """Minimal Jira search hit"""
    return {
        'id': key.split('-')[-1],
        'key': key,
        'fields': {
            'created': created,
            'resolutiondate': resolutiondate,
            'updated': updated,
            'issuetype': {'name': issuetype},
            'status': {'name': status},
            'assignee': {'name': assignee} if assignee else None,
            'resolution': {'name': resolution} if resolution else None,
            'versions': [{'id': i} for i in affected_ids],
            'fixVersions': [{'id': i} for i in fix_ids],
        },
    }


RELEASE_LISTING = [
    {'id': '1', 'name': '1.0.0', 'releaseDate': '2020-01-01', 'released': True},
    {'id': '3', 'name': '3.0.0', 'releaseDate': '2021-01-01', 'released': True},
    {'id': '2', 'name': '2.0.0', 'releaseDate': '2020-06-01', 'released': True},
    {'id': '9', 'name': '9.9.9', 'released': False},
]
