"""
Jira REST integration: release listing and paginated ticket retrieval.
"""

import logging
from datetime import date, datetime

import requests

from .config import (
    PROJECT_NAME,
    JIRA_BASE_URL,
    JIRA_USER,
    JIRA_TOKEN,
    JIRA_DATE_FORMAT,
    PAGE_SIZE,
    REQUEST_TIMEOUT,
)
from .models import (
    ResolutionType,
    Ticket,
    TicketFilter,
    TicketStatus,
    TicketType,
)
from .releases import ReleaseTimeline

logger = logging.getLogger(__name__)


class TrackerError(RuntimeError):
    """The issue tracker could not be reached or returned an unusable payload"""


def parse_jira_date(value: str) -> date:
    """Parse a Jira timestamp, keeping the calendar date of its own offset"""
    return datetime.strptime(value, JIRA_DATE_FORMAT).date()


def build_jql(project: str, ticket_filter: TicketFilter) -> str:
    """Build the JQL query for a project and ticket filter"""
    clauses = [f'project="{project}"']

    def any_of(field_name, values):
        return '(' + ' OR '.join(f'"{field_name}"="{v.value}"' for v in values) + ')'

    if ticket_filter.statuses:
        clauses.append(any_of('status', ticket_filter.statuses))
    if ticket_filter.types:
        clauses.append(any_of('issueType', ticket_filter.types))
    if ticket_filter.resolutions:
        clauses.append(any_of('resolution', ticket_filter.resolutions))
    return ' AND '.join(clauses)


class JiraClient:
    """Thin wrapper around a requests session pointed at a Jira REST API"""

    def __init__(self, base_url: str = JIRA_BASE_URL, session: requests.Session = None,
                 timeout: int = REQUEST_TIMEOUT):
        self.base_url = base_url if base_url.endswith('/') else base_url + '/'
        self.timeout = timeout
        self.api_calls = 0

        if session:
            self.session = session
        else:
            self.session = requests.Session()
            if JIRA_USER and JIRA_TOKEN:
                self.session.auth = (JIRA_USER, JIRA_TOKEN)
            self.session.headers['Accept'] = 'application/json'
            self.session.headers['User-Agent'] = 'Bug-Lineage'

    def get_json(self, path: str, params: dict = None):
        """GET a JSON document; transport and decoding failures raise TrackerError"""
        url = self.base_url + path
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
            self.api_calls += 1
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as e:
            raise TrackerError(f"Request to {url} failed: {e}") from e
        except ValueError as e:
            raise TrackerError(f"Invalid JSON from {url}: {e}") from e

    def fetch_releases(self, project: str = PROJECT_NAME) -> ReleaseTimeline:
        """Retrieve the project's releases; undated ones are dropped"""
        entries = self.get_json(f'project/{project.upper()}/versions')
        if not isinstance(entries, list):
            raise TrackerError(f"Unexpected release listing for {project}: {type(entries).__name__}")
        return ReleaseTimeline.from_json(entries)


class JiraTicketRepository:
    """Fetches tickets matching a filter and maps them onto the release timeline"""

    def __init__(self, client: JiraClient, timeline: ReleaseTimeline,
                 project: str = PROJECT_NAME, page_size: int = PAGE_SIZE):
        self.client = client
        self.timeline = timeline
        self.project = project.upper()
        self.page_size = page_size
        self.tickets: list[Ticket] = []
        self.tickets_without_fix: list[Ticket] = []
        self.malformed_issues: list[str] = []

    def clear(self):
        self.tickets.clear()
        self.tickets_without_fix.clear()
        self.malformed_issues.clear()

    def fetch(self, ticket_filter: TicketFilter = None) -> list[Ticket]:
        """
        Retrieve all tickets matching the filter, one page at a time.

        Each call starts from an empty result. The server-reported total is
        re-read on every page. Tickets parsed before a TrackerError stay in
        `self.tickets`. An issue that cannot be parsed is skipped and its key
        recorded in `self.malformed_issues`.
        """
        self.clear()
        ticket_filter = ticket_filter or TicketFilter()
        jql = build_jql(self.project, ticket_filter)
        logger.info("Fetching tickets: %s", jql)

        start_at = 0
        total = None
        while total is None or start_at < total:
            data = self.client.get_json('search', params={
                'jql': jql,
                'startAt': start_at,
                'maxResults': self.page_size,
            })
            try:
                issues = data['issues']
                reported = int(data['total'])
            except (KeyError, TypeError, ValueError) as e:
                raise TrackerError(f"Malformed search page at startAt={start_at}: {e}") from e

            if reported != total:
                total = reported
                logger.info("Total number of issues: %d", total)

            for issue in issues:
                try:
                    ticket = self._ticket_from_json(issue)
                except (KeyError, TypeError, ValueError, AttributeError) as e:
                    key = issue.get('key', '?') if isinstance(issue, dict) else '?'
                    logger.warning("Skipping malformed issue %s: %r", key, e)
                    self.malformed_issues.append(key)
                    continue
                self.tickets.append(ticket)
                if ticket.fixed is None:
                    self.tickets_without_fix.append(ticket)
            start_at += len(issues)

            if not issues and start_at < total:
                logger.warning("Empty page at startAt=%d of %d, stopping", start_at, total)
                break

        logger.info("Number of valid tickets found: %d", len(self.tickets))
        if self.tickets_without_fix:
            logger.warning("%d tickets have no fix version: %s", len(self.tickets_without_fix),
                           ', '.join(t.key for t in self.tickets_without_fix))
        return self.tickets

    def _ticket_from_json(self, issue: dict) -> Ticket:
        fields = issue['fields']

        issue_date = parse_jira_date(fields['created'])
        closed_raw = fields.get('resolutiondate') or fields.get('updated')
        closed_date = parse_jira_date(closed_raw) if closed_raw else issue_date

        assignee = ''
        if fields.get('assignee'):
            assignee = fields['assignee'].get('name', '') or ''

        resolution = None
        if fields.get('resolution'):
            resolution = ResolutionType.from_name(fields['resolution'].get('name'))

        ticket = Ticket(
            id=str(issue['id']),
            key=issue['key'],
            issue_date=issue_date,
            closed_date=closed_date,
            type=TicketType.from_name((fields.get('issuetype') or {}).get('name')),
            status=TicketStatus.from_name((fields.get('status') or {}).get('name')),
            assignee=assignee,
            resolution=resolution,
        )

        fixed = self._fix_release(fields.get('fixVersions') or [])
        if fixed is not None:
            ticket.set_fixed(fixed)

        for version in fields.get('versions') or []:
            release = self.timeline.by_id(str(version.get('id')))
            if release is not None and release not in ticket.affected_versions:
                ticket.affected_versions.append(release)

        return ticket

    def _fix_release(self, fix_versions: list[dict]):
        """Latest-dated known fix version; first listed wins on equal dates"""
        candidates = []
        for version in fix_versions:
            release = self.timeline.by_id(str(version.get('id')))
            if release is not None:
                candidates.append(release)
        if not candidates:
            return None
        best = candidates[0]
        for release in candidates[1:]:
            if release.release_date > best.release_date:
                best = release
        return best
