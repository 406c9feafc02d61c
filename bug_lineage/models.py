"""
Data model: releases, commits, tickets and ticket filters.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum


class _NamedEnum(Enum):
    """Enum whose value is the display name used by Jira"""

    @classmethod
    def from_name(cls, name: str | None):
        """Case-insensitive lookup by Jira display name; None if unknown"""
        if name is None:
            return None
        for member in cls:
            if member.value.lower() == name.strip().lower():
                return member
        return None


class TicketStatus(_NamedEnum):
    OPEN = 'Open'
    IN_PROGRESS = 'In Progress'
    REOPENED = 'Reopened'
    PATCH_AVAILABLE = 'Patch Available'
    RESOLVED = 'Resolved'
    CLOSED = 'Closed'


class TicketType(_NamedEnum):
    BUG = 'Bug'
    IMPROVEMENT = 'Improvement'
    NEW_FEATURE = 'New Feature'
    TASK = 'Task'
    SUB_TASK = 'Sub-task'
    TEST = 'Test'
    WISH = 'Wish'


class ResolutionType(_NamedEnum):
    FIXED = 'Fixed'
    SOLVED = 'Solved'
    WONT_FIX = "Won't Fix"
    DUPLICATE = 'Duplicate'
    INVALID = 'Invalid'
    NOT_A_PROBLEM = 'Not A Problem'
    CANNOT_REPRODUCE = 'Cannot Reproduce'


class InjectedSource(Enum):
    """Where a ticket's injected version came from"""
    AFFECTED = 'affected'               # earliest affected version
    FORCED_BASELINE = 'forced_baseline'  # FORCE_IV_TO_4_0_0 strategy
    ESTIMATED = 'estimated'             # proportion estimate


@dataclass(frozen=True)
class Release:
    """A dated project release"""
    id: str
    name: str
    release_date: date
    released: bool = False

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class CommitInfo:
    """One VCS commit, shared read-only by every ticket it references"""
    commit_id: str
    author_name: str
    author_email: str
    commit_date: date
    message: str


@dataclass
class TicketFilter:
    """Which tickets to retrieve; empty means no restriction on that field"""
    statuses: list[TicketStatus] = field(default_factory=list)
    types: list[TicketType] = field(default_factory=list)
    resolutions: list[ResolutionType] = field(default_factory=list)

    @classmethod
    def fixed_bugs(cls) -> 'TicketFilter':
        """Closed or resolved bugs with a FIXED resolution"""
        return cls(
            statuses=[TicketStatus.CLOSED, TicketStatus.RESOLVED],
            types=[TicketType.BUG],
            resolutions=[ResolutionType.FIXED],
        )


@dataclass
class Ticket:
    """An issue-tracker ticket and the versions resolved for it"""
    id: str
    key: str
    issue_date: date
    closed_date: date
    type: TicketType | None = None
    status: TicketStatus | None = None
    assignee: str = ''
    resolution: ResolutionType | None = None

    fixed: Release | None = None
    opening: Release | None = None
    injected: Release | None = None
    injected_source: InjectedSource | None = None

    affected_versions: list[Release] = field(default_factory=list)
    associated_commits: list[CommitInfo] = field(default_factory=list)

    def add_commit(self, commit: CommitInfo) -> bool:
        """Attach a commit once; returns False if it was already attached"""
        if any(c.commit_id == commit.commit_id for c in self.associated_commits):
            return False
        self.associated_commits.append(commit)
        return True

    def latest_commit_date(self) -> date | None:
        """Most recent date among the associated commits"""
        if not self.associated_commits:
            return None
        return max(c.commit_date for c in self.associated_commits)

    def earliest_affected(self) -> Release | None:
        """Earliest affected version by release date (first listed on ties)"""
        if not self.affected_versions:
            return None
        return min(self.affected_versions, key=lambda r: r.release_date)

    # Single-assignment setters: a field already set is never overwritten

    def set_fixed(self, release: Release) -> bool:
        if self.fixed is not None:
            return False
        self.fixed = release
        return True

    def set_opening(self, release: Release) -> bool:
        if self.opening is not None:
            return False
        self.opening = release
        return True

    def set_injected(self, release: Release, source: InjectedSource) -> bool:
        if self.injected is not None:
            return False
        self.injected = release
        self.injected_source = source
        return True

    def clear_injected(self):
        self.injected = None
        self.injected_source = None
