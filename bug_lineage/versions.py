"""
Version resolution: opening, fix and affected-derived injected versions.
"""

import logging
from dataclasses import dataclass, field
from datetime import date

from .models import InjectedSource, Release, Ticket
from .releases import ReleaseTimeline

logger = logging.getLogger(__name__)


def resolve_opening_version(timeline: ReleaseTimeline, issue_date: date) -> Release | None:
    """Release current when the ticket was filed (latest on or before issue date)"""
    return timeline.latest_on_or_before(issue_date)


def resolve_fix_version(timeline: ReleaseTimeline, latest_commit_date: date) -> Release | None:
    """First release shipped on or after the ticket's last commit"""
    return timeline.first_on_or_after(latest_commit_date)


def resolve_injected_from_affected(timeline: ReleaseTimeline, affected_versions) -> Release | None:
    """
    Latest release strictly before the earliest affected version.

    None when there are no affected versions, or when the earliest one is
    already the first release on the timeline.
    """
    if not affected_versions:
        return None
    earliest = min(affected_versions, key=lambda r: r.release_date)
    return timeline.latest_strictly_before(earliest.release_date)


@dataclass
class ResolutionReport:
    """Counts from resolving OV and AV-derived IV over a ticket set"""
    opening_resolved: int = 0
    missing_opening: list = field(default_factory=list)    # ticket keys
    with_affected: int = 0
    injected_from_affected: int = 0
    injected_not_computable: list = field(default_factory=list)
    affected_at_baseline: int = 0


def resolve_opening_versions(tickets: list[Ticket], timeline: ReleaseTimeline,
                             report: ResolutionReport = None) -> ResolutionReport:
    """Set the opening version of every ticket that has none"""
    report = report or ResolutionReport()
    for ticket in tickets:
        if ticket.opening is not None:
            report.opening_resolved += 1
            continue
        release = resolve_opening_version(timeline, ticket.issue_date)
        if release is None:
            logger.warning("No release on or before %s for ticket %s", ticket.issue_date, ticket.key)
            report.missing_opening.append(ticket.key)
            continue
        ticket.set_opening(release)
        report.opening_resolved += 1
    return report


def resolve_injected_versions(tickets: list[Ticket], timeline: ReleaseTimeline,
                              baseline: Release = None,
                              report: ResolutionReport = None) -> ResolutionReport:
    """Derive injected versions from affected versions where possible"""
    report = report or ResolutionReport()
    for ticket in tickets:
        if not ticket.affected_versions:
            continue
        report.with_affected += 1
        if ticket.injected is not None:
            continue

        release = resolve_injected_from_affected(timeline, ticket.affected_versions)
        if release is not None:
            ticket.set_injected(release, InjectedSource.AFFECTED)
            report.injected_from_affected += 1
        else:
            report.injected_not_computable.append(ticket.key)
            if baseline is not None and ticket.earliest_affected() == baseline:
                report.affected_at_baseline += 1

    logger.info("Injected versions from AV: %d computed, %d not computable (%d with AV at baseline)",
                report.injected_from_affected, len(report.injected_not_computable),
                report.affected_at_baseline)
    return report
