"""
Bug Lineage - Defect Version Labeling from Tracker and VCS History
===================================================================

Links commits to issue-tracker tickets and resolves, for each fixed bug, the
release it was opened in, the release that fixed it, and the release that
introduced it.

Key insight: affected versions are reported for only part of the bugs.
The proportion between known IV->FV and OV->FV distances lets us place the
injected version of the rest.
"""

from .config import (
    PROJECT_NAME,
    JIRA_BASE_URL,
    BASELINE_RELEASE,
    DEFAULT_PROPORTION,
)

from .models import (
    Release,
    CommitInfo,
    Ticket,
    TicketFilter,
    TicketStatus,
    TicketType,
    ResolutionType,
    InjectedSource,
)

from .releases import (
    ReleaseTimeline,
    export_release_info,
)

from .jira import (
    JiraClient,
    JiraTicketRepository,
    TrackerError,
    build_jql,
)

from .linking import (
    CommitTicketLinker,
    LinkReport,
    RepositoryError,
    read_commit_log,
)

from .versions import (
    resolve_opening_version,
    resolve_fix_version,
    resolve_injected_from_affected,
    resolve_opening_versions,
    resolve_injected_versions,
)

from .proportion import (
    Strategy,
    ProportionResult,
    apply_proportion_estimation,
    compare_strategies,
    reset_estimated_injected,
)

from .pipeline import (
    build_dataset,
    label_tickets,
    tickets_to_dataframe,
)

from .diagnostics import audit_tickets

__version__ = "0.1.0"

__all__ = [
    # Config
    "PROJECT_NAME",
    "JIRA_BASE_URL",
    "BASELINE_RELEASE",
    "DEFAULT_PROPORTION",
    # Models
    "Release",
    "CommitInfo",
    "Ticket",
    "TicketFilter",
    "TicketStatus",
    "TicketType",
    "ResolutionType",
    "InjectedSource",
    # Releases
    "ReleaseTimeline",
    "export_release_info",
    # Jira
    "JiraClient",
    "JiraTicketRepository",
    "TrackerError",
    "build_jql",
    # Linking
    "CommitTicketLinker",
    "LinkReport",
    "RepositoryError",
    "read_commit_log",
    # Versions
    "resolve_opening_version",
    "resolve_fix_version",
    "resolve_injected_from_affected",
    "resolve_opening_versions",
    "resolve_injected_versions",
    # Proportion
    "Strategy",
    "ProportionResult",
    "apply_proportion_estimation",
    "compare_strategies",
    "reset_estimated_injected",
    # Pipeline
    "build_dataset",
    "label_tickets",
    "tickets_to_dataframe",
    # Diagnostics
    "audit_tickets",
]
