#!/usr/bin/env python3
"""
Tests for Jira release listing and ticket retrieval (network replaced by a fake session).

Usage:
    python -m pytest tests/test_jira.py -v
"""

from datetime import date

import pytest
import requests

from bug_lineage.jira import JiraClient, JiraTicketRepository, TrackerError, build_jql, parse_jira_date
from bug_lineage.models import ResolutionType, TicketFilter, TicketStatus, TicketType
from bug_lineage.releases import ReleaseTimeline

from conftest import R1, R2, R3, RELEASE_LISTING, FakeResponse, issue_json


def make_repository(fake_session, pages, timeline=None, page_size=2):
    session = fake_session({'search': pages})
    client = JiraClient('https://jira.example.org/rest/api/2', session=session)
    repo = JiraTicketRepository(client, timeline or ReleaseTimeline([R1, R2, R3]),
                                project='proj', page_size=page_size)
    return repo, session


# =============================================================================
# QUERY BUILDING
# =============================================================================

def test_build_jql_fixed_bugs():
    jql = build_jql('PROJ', TicketFilter.fixed_bugs())
    assert jql == ('project="PROJ" AND ("status"="Closed" OR "status"="Resolved") '
                   'AND ("issueType"="Bug") AND ("resolution"="Fixed")')


def test_build_jql_empty_filter():
    """Empty filter fields add no restriction"""
    assert build_jql('PROJ', TicketFilter()) == 'project="PROJ"'


def test_parse_jira_date_keeps_local_calendar_day():
    assert parse_jira_date('2014-06-11T23:21:43.000+0200') == date(2014, 6, 11)
    assert parse_jira_date('2014-06-11T00:10:00.000-0800') == date(2014, 6, 11)


# =============================================================================
# RELEASES
# =============================================================================

def test_fetch_releases(fake_session):
    session = fake_session({'project/PROJ/versions': [RELEASE_LISTING]})
    client = JiraClient('https://jira.example.org/rest/api/2/', session=session)
    timeline = client.fetch_releases('proj')

    assert session.calls[0][0] == 'https://jira.example.org/rest/api/2/project/PROJ/versions'
    assert [r.name for r in timeline] == ['1.0.0', '2.0.0', '3.0.0']


def test_fetch_releases_transport_error(fake_session):
    session = fake_session({'project/PROJ/versions': [requests.ConnectionError('down')]})
    client = JiraClient('https://jira.example.org/rest/api/2/', session=session)
    with pytest.raises(TrackerError):
        client.fetch_releases('PROJ')


def test_http_error_becomes_tracker_error(fake_session):
    session = fake_session({'project/PROJ/versions': [FakeResponse({}, status_code=500)]})
    client = JiraClient('https://jira.example.org/rest/api/2/', session=session)
    with pytest.raises(TrackerError):
        client.fetch_releases('PROJ')


# =============================================================================
# PAGINATION
# =============================================================================

def test_pagination_rereads_total(fake_session):
    """A total that grows between pages is honored"""
    pages = [
        {'total': 3, 'issues': [issue_json('PROJ-1'), issue_json('PROJ-2')]},
        {'total': 4, 'issues': [issue_json('PROJ-3'), issue_json('PROJ-4')]},
    ]
    repo, session = make_repository(fake_session, pages)
    tickets = repo.fetch(TicketFilter.fixed_bugs())

    assert [t.key for t in tickets] == ['PROJ-1', 'PROJ-2', 'PROJ-3', 'PROJ-4']
    assert [params['startAt'] for _, params in session.calls] == [0, 2]
    assert all(params['maxResults'] == 2 for _, params in session.calls)
    assert session.calls[0][1]['jql'].startswith('project="PROJ"')


def test_pagination_empty_result(fake_session):
    repo, session = make_repository(fake_session, [{'total': 0, 'issues': []}])
    assert repo.fetch() == []
    assert len(session.calls) == 1


def test_pagination_stops_on_empty_page(fake_session):
    """An empty page before the total is reached ends the loop"""
    pages = [
        {'total': 5, 'issues': [issue_json('PROJ-1'), issue_json('PROJ-2')]},
        {'total': 5, 'issues': []},
    ]
    repo, session = make_repository(fake_session, pages)
    assert len(repo.fetch()) == 2
    assert len(session.calls) == 2


def test_transport_error_keeps_partial_tickets(fake_session):
    pages = [
        {'total': 4, 'issues': [issue_json('PROJ-1'), issue_json('PROJ-2')]},
        requests.Timeout('slow'),
    ]
    repo, _ = make_repository(fake_session, pages)
    with pytest.raises(TrackerError):
        repo.fetch()
    assert [t.key for t in repo.tickets] == ['PROJ-1', 'PROJ-2']


def test_malformed_page(fake_session):
    repo, _ = make_repository(fake_session, [{'issues': []}])
    with pytest.raises(TrackerError):
        repo.fetch()


def test_malformed_issue_skipped(fake_session):
    """An issue that cannot be parsed is recorded and the rest are kept"""
    no_created = issue_json('PROJ-2')
    del no_created['fields']['created']
    bad_date = issue_json('PROJ-3', created='yesterday')
    no_fields = {'id': '4', 'key': 'PROJ-4'}
    pages = [{'total': 4, 'issues': [issue_json('PROJ-1'), no_created, bad_date, no_fields]}]
    repo, _ = make_repository(fake_session, pages, page_size=4)

    assert [t.key for t in repo.fetch()] == ['PROJ-1']
    assert repo.malformed_issues == ['PROJ-2', 'PROJ-3', 'PROJ-4']
    assert [t.key for t in repo.tickets_without_fix] == ['PROJ-1']


def test_refetch_replaces_previous_result(fake_session):
    page = {'total': 2, 'issues': [issue_json('PROJ-1'), issue_json('PROJ-2', fix_ids=['2'])]}
    repo, session = make_repository(fake_session, [page, page])
    repo.fetch()
    tickets = repo.fetch()

    assert len(session.calls) == 2
    assert [t.key for t in tickets] == ['PROJ-1', 'PROJ-2']
    assert [t.key for t in repo.tickets_without_fix] == ['PROJ-1']


# =============================================================================
# TICKET PARSING
# =============================================================================

def test_ticket_fields(fake_session):
    pages = [{'total': 1, 'issues': [issue_json('PROJ-7', fix_ids=['2'], affected_ids=['1'])]}]
    repo, _ = make_repository(fake_session, pages)
    ticket = repo.fetch()[0]

    assert ticket.id == '7'
    assert ticket.issue_date == date(2020, 3, 1)
    assert ticket.closed_date == date(2020, 7, 1)
    assert ticket.type is TicketType.BUG
    assert ticket.status is TicketStatus.CLOSED
    assert ticket.resolution is ResolutionType.FIXED
    assert ticket.assignee == 'dev'
    assert ticket.fixed == R2
    assert ticket.affected_versions == [R1]
    assert ticket.opening is None and ticket.injected is None


def test_closed_date_falls_back_to_updated(fake_session):
    pages = [{'total': 1, 'issues': [issue_json('PROJ-1', resolutiondate=None)]}]
    repo, _ = make_repository(fake_session, pages)
    assert repo.fetch()[0].closed_date == date(2020, 7, 2)


def test_optional_fields_missing(fake_session):
    pages = [{'total': 1, 'issues': [issue_json('PROJ-1', assignee=None, resolution=None)]}]
    repo, _ = make_repository(fake_session, pages)
    ticket = repo.fetch()[0]
    assert ticket.assignee == ''
    assert ticket.resolution is None


def test_latest_fix_version_wins(fake_session):
    """With several fix versions the latest-dated one is chosen"""
    pages = [{'total': 1, 'issues': [issue_json('PROJ-1', fix_ids=['3', '1', '2'])]}]
    repo, _ = make_repository(fake_session, pages)
    assert repo.fetch()[0].fixed == R3


def test_fix_version_tie_keeps_first_listed(fake_session):
    from bug_lineage.models import Release
    twin = Release(id='4', name='3.0.0-hotfix', release_date=R3.release_date)
    pages = [{'total': 1, 'issues': [issue_json('PROJ-1', fix_ids=['1', '4', '3'])]}]
    repo, _ = make_repository(fake_session, pages, timeline=ReleaseTimeline([R1, R2, R3, twin]))
    assert repo.fetch()[0].fixed == twin


def test_missing_fix_version_recorded(fake_session):
    """Empty or unknown fix versions are recorded, not errors"""
    pages = [{'total': 2, 'issues': [issue_json('PROJ-1'), issue_json('PROJ-2', fix_ids=['99'])]}]
    repo, _ = make_repository(fake_session, pages)
    tickets = repo.fetch()
    assert all(t.fixed is None for t in tickets)
    assert [t.key for t in repo.tickets_without_fix] == ['PROJ-1', 'PROJ-2']


def test_affected_versions_deduplicated(fake_session):
    pages = [{'total': 1, 'issues': [issue_json('PROJ-1', affected_ids=['2', '1', '2', '42'])]}]
    repo, _ = make_repository(fake_session, pages)
    assert repo.fetch()[0].affected_versions == [R2, R1]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
