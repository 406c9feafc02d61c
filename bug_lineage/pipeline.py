"""
End-to-end pipeline: releases -> tickets -> commit links -> versions -> proportion.
"""

import logging
from dataclasses import dataclass, field

import pandas as pd

from .config import PROJECT_NAME, BASELINE_RELEASE, PAGE_SIZE, RELEASE_PERCENTAGE
from .jira import JiraClient, JiraTicketRepository, TrackerError
from .linking import CommitTicketLinker, LinkReport, read_commit_log
from .models import Ticket, TicketFilter
from .proportion import ProportionResult, Strategy, apply_proportion_estimation, find_baseline
from .releases import ReleaseTimeline
from .versions import ResolutionReport, resolve_injected_versions, resolve_opening_versions

logger = logging.getLogger(__name__)


@dataclass
class DatasetReport:
    """Everything a run produced besides the tickets themselves"""
    project: str
    releases: int = 0
    tickets: int = 0
    tickets_without_fix: list = field(default_factory=list)
    malformed_issues: list = field(default_factory=list)
    link: LinkReport | None = None
    resolution: ResolutionReport | None = None
    proportion: ProportionResult | None = None
    errors: list = field(default_factory=list)


@dataclass
class Dataset:
    timeline: ReleaseTimeline
    tickets: list[Ticket]
    report: DatasetReport


def label_tickets(tickets: list[Ticket], commits, timeline: ReleaseTimeline,
                  strategy: Strategy | None, project: str = PROJECT_NAME,
                  baseline_name: str = BASELINE_RELEASE,
                  report: DatasetReport = None) -> DatasetReport:
    """Run linking, version resolution and (optionally) proportion on fetched tickets"""
    report = report or DatasetReport(project=project.upper())
    baseline = find_baseline(timeline, baseline_name)

    report.link = CommitTicketLinker(project).link(tickets, commits, timeline)

    report.resolution = resolve_opening_versions(tickets, timeline)
    resolve_injected_versions(tickets, timeline, baseline, report.resolution)

    if strategy is not None:
        report.proportion = apply_proportion_estimation(tickets, timeline, strategy, baseline)
    return report


def build_dataset(repo_path: str, project: str = PROJECT_NAME,
                  strategy: Strategy | None = Strategy.EXCLUDE_BASELINE,
                  ticket_filter: TicketFilter = None,
                  client: JiraClient = None,
                  baseline_name: str = BASELINE_RELEASE,
                  release_percentage: float = RELEASE_PERCENTAGE,
                  page_size: int = PAGE_SIZE) -> Dataset:
    """
    Build the labeled ticket set for a project.

    Failing to list releases or to read the repository is fatal. A failure
    while paging tickets is recorded and the run continues with the tickets
    fetched so far.

    Raises ValueError when release_percentage is outside (0, 1].
    """
    if not 0 < release_percentage <= 1:
        raise ValueError(f"release_percentage must be in (0, 1], got {release_percentage}")
    project = project.upper()
    client = client or JiraClient()
    report = DatasetReport(project=project)

    timeline = client.fetch_releases(project)
    if release_percentage < 1:
        timeline = timeline.truncated(release_percentage)
    report.releases = len(timeline)
    logger.info("Using %d releases for %s", len(timeline), project)

    commits = read_commit_log(repo_path)

    repository = JiraTicketRepository(client, timeline, project=project, page_size=page_size)
    try:
        repository.fetch(ticket_filter or TicketFilter.fixed_bugs())
    except TrackerError as e:
        logger.error("Ticket retrieval aborted: %s", e)
        report.errors.append(str(e))
    tickets = repository.tickets
    report.tickets = len(tickets)
    report.tickets_without_fix = [t.key for t in repository.tickets_without_fix]
    report.malformed_issues = list(repository.malformed_issues)

    label_tickets(tickets, commits, timeline, strategy, project, baseline_name, report)
    return Dataset(timeline=timeline, tickets=tickets, report=report)


def tickets_to_dataframe(tickets: list[Ticket]) -> pd.DataFrame:
    """One row per ticket with its resolved versions"""
    def name(release):
        return release.name if release else None

    rows = [
        {
            'key': t.key,
            'issue_date': t.issue_date,
            'closed_date': t.closed_date,
            'type': t.type.value if t.type else None,
            'status': t.status.value if t.status else None,
            'resolution': t.resolution.value if t.resolution else None,
            'assignee': t.assignee,
            'opening_version': name(t.opening),
            'fix_version': name(t.fixed),
            'injected_version': name(t.injected),
            'injected_source': t.injected_source.value if t.injected_source else None,
            'affected_versions': ','.join(r.name for r in t.affected_versions),
            'num_commits': len(t.associated_commits),
        }
        for t in tickets
    ]
    columns = ['key', 'issue_date', 'closed_date', 'type', 'status', 'resolution', 'assignee',
               'opening_version', 'fix_version', 'injected_version', 'injected_source',
               'affected_versions', 'num_commits']
    return pd.DataFrame(rows, columns=columns)
