"""
Commit-ticket linking: ticket references in commit messages and fix version inference.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from pydriller import Repository

from .config import PROJECT_NAME, ISSUE_REFERENCE, HASHTAG_REFERENCE, DIGITS, project_reference
from .models import CommitInfo, Ticket
from .releases import ReleaseTimeline
from .versions import resolve_fix_version

logger = logging.getLogger(__name__)


class RepositoryError(RuntimeError):
    """The VCS repository could not be opened or read"""


def read_commit_log(repo_path: str) -> list[CommitInfo]:
    """Read every commit of the repository, newest first"""
    commits = []
    try:
        for commit in Repository(repo_path, order='reverse').traverse_commits():
            # committer timestamp, as a date in the local timezone
            local_date = datetime.fromtimestamp(commit.committer_date.timestamp()).date()
            commits.append(CommitInfo(
                commit_id=commit.hash,
                author_name=commit.author.name,
                author_email=commit.author.email,
                commit_date=local_date,
                message=commit.msg,
            ))
    except Exception as e:
        raise RepositoryError(f"Unable to read repository {repo_path}: {e}") from e
    logger.info("Read %d commits from %s", len(commits), repo_path)
    return commits


@dataclass
class LinkReport:
    """Outcome of a linking run"""
    commits_scanned: int = 0
    commits_with_references: int = 0
    links_added: int = 0
    unmatched_keys: set = field(default_factory=set)
    fix_known: int = 0
    fix_inferred: int = 0
    no_release_after_commit: list = field(default_factory=list)   # ticket keys
    unresolved: list = field(default_factory=list)                # no commits, no fix version


class CommitTicketLinker:
    """Attaches commits to the tickets their messages reference"""

    def __init__(self, project: str = PROJECT_NAME):
        self.project = project.upper()
        self.prefix = self.project + '-'
        self.patterns = [project_reference(self.project), ISSUE_REFERENCE, HASHTAG_REFERENCE]

    def extract_references(self, message: str) -> list[str]:
        """Distinct raw references in the upper-cased message, in pattern order"""
        upper = message.upper()
        found = []
        for pattern in self.patterns:
            for match in pattern.findall(upper):
                if match not in found:
                    found.append(match)
        return found

    def canonical_key(self, reference: str) -> str:
        """Map `ISSUE 12` and `#12` onto PROJECT-12"""
        if reference.startswith(self.prefix):
            return reference
        return self.prefix + DIGITS.search(reference).group()

    def ticket_keys(self, message: str) -> list[str]:
        keys = []
        for ref in self.extract_references(message):
            key = self.canonical_key(ref)
            if key not in keys:
                keys.append(key)
        return keys

    def link(self, tickets: list[Ticket], commits, timeline: ReleaseTimeline) -> LinkReport:
        """
        Attach every commit to the tickets it references, then infer missing
        fix versions from the latest associated commit.

        Re-running on the same commits attaches nothing new.
        """
        report = LinkReport()

        # first ticket wins for a duplicated key
        index = {}
        for ticket in tickets:
            index.setdefault(ticket.key.upper(), ticket)

        for commit in commits:
            report.commits_scanned += 1
            keys = self.ticket_keys(commit.message)
            if not keys:
                logger.debug("No ticket reference in commit %s", commit.commit_id)
                continue
            report.commits_with_references += 1

            for key in keys:
                ticket = index.get(key)
                if ticket is None:
                    report.unmatched_keys.add(key)
                    continue
                if ticket.add_commit(commit):
                    report.links_added += 1

        self.assign_fix_versions(tickets, timeline, report)

        logger.info("Linked %d commits (%d with references, %d new links)",
                    report.commits_scanned, report.commits_with_references, report.links_added)
        return report

    def assign_fix_versions(self, tickets: list[Ticket], timeline: ReleaseTimeline,
                            report: LinkReport = None) -> LinkReport:
        """Fill missing fix versions with the first release on/after the last commit"""
        report = report or LinkReport()
        for ticket in tickets:
            if ticket.fixed is not None:
                report.fix_known += 1
                continue

            latest = ticket.latest_commit_date()
            if latest is None:
                logger.warning("Ticket %s has no associated commits and no fix version", ticket.key)
                report.unresolved.append(ticket.key)
                continue

            release = resolve_fix_version(timeline, latest)
            if release is None:
                logger.warning("No release on or after %s for ticket %s", latest, ticket.key)
                report.no_release_after_commit.append(ticket.key)
                continue

            ticket.set_fixed(release)
            report.fix_inferred += 1
            logger.debug("Inferred fix version %s for %s (last commit %s)", release.name, ticket.key, latest)

        return report
