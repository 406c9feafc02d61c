#!/usr/bin/env python3
"""
Build the labeled defect dataset for a project.

Usage:
    python build_dataset.py --repo ../bookkeeper                          # EXCLUDE_4_0_0
    python build_dataset.py --repo ../bookkeeper --strategy FORCE_IV_TO_4_0_0
    python build_dataset.py --repo ../bookkeeper --strategy compare       # both, side by side
    python build_dataset.py --repo ../bookkeeper --output tickets.csv --releases-csv
"""

import argparse
import logging
import sys

from bug_lineage import (
    PROJECT_NAME,
    BASELINE_RELEASE,
    RepositoryError,
    Strategy,
    TrackerError,
    audit_tickets,
    build_dataset,
    compare_strategies,
    export_release_info,
    tickets_to_dataframe,
)
from bug_lineage.config import REPO_PATH, RELEASE_PERCENTAGE
from bug_lineage.proportion import find_baseline


def setup_logging(verbose: bool, log_file: str = None):
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def percentage(value: str) -> float:
    """argparse type for a release fraction in (0, 1]"""
    try:
        fraction = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")
    if not 0 < fraction <= 1:
        raise argparse.ArgumentTypeError(f"must be in (0, 1], got {value}")
    return fraction


def print_summary(dataset):
    report = dataset.report
    print(f"\n{'='*60}")
    print(f"RUN SUMMARY: {report.project}")
    print(f"{'='*60}")
    print(f"  Releases:               {report.releases}")
    print(f"  Tickets:                {report.tickets}")
    print(f"  Without fix version:    {len(report.tickets_without_fix)}")
    if report.malformed_issues:
        print(f"  Malformed (skipped):    {len(report.malformed_issues)}")
    if report.link:
        print(f"  Commits scanned:        {report.link.commits_scanned}")
        print(f"  Commit-ticket links:    {report.link.links_added}")
        print(f"  Fix version inferred:   {report.link.fix_inferred}")
        print(f"  Unresolved tickets:     {len(report.link.unresolved)}")
    if report.resolution:
        print(f"  Missing opening:        {len(report.resolution.missing_opening)}")
        print(f"  IV from AV:             {report.resolution.injected_from_affected}")
    for error in report.errors:
        print(f"  ERROR: {error}")


def print_proportion(result):
    print(f"\n=== STRATEGY: {result.strategy.value} ===")
    print(f"  Avg proportion:         {result.proportion:.3f} ({result.valid_tickets} tickets)")
    print(f"  Inconsistent excluded:  {result.inconsistent_tickets}")
    if result.strategy is Strategy.FORCE_BASELINE_IV:
        print(f"  Forced to baseline:     {result.forced}")
    print(f"  Estimated:              {result.estimated}")
    print(f"  Not estimable:          {result.not_estimable}")


def main():
    parser = argparse.ArgumentParser(description='Build a labeled defect dataset from Jira and git')
    parser.add_argument('--repo', default=REPO_PATH, help='Path to the local git clone')
    parser.add_argument('--project', default=PROJECT_NAME, help='Jira project key')
    parser.add_argument('--strategy', default='EXCLUDE_4_0_0',
                        help='EXCLUDE_4_0_0, FORCE_IV_TO_4_0_0, compare or none')
    parser.add_argument('--baseline', default=BASELINE_RELEASE, help='Baseline release name')
    parser.add_argument('--release-percentage', type=percentage, default=RELEASE_PERCENTAGE,
                        help='Keep only the first fraction of releases (0-1]')
    parser.add_argument('--output', help='Write the labeled tickets to this CSV')
    parser.add_argument('--releases-csv', action='store_true',
                        help='Write <PROJECT>ReleaseInfo.csv')
    parser.add_argument('--log-file', help='Also log to this file')
    parser.add_argument('--verbose', action='store_true')
    args = parser.parse_args()
    if not 0 < args.release_percentage <= 1:
        parser.error(f"RELEASE_PERCENTAGE must be in (0, 1], got {args.release_percentage}")

    setup_logging(args.verbose, args.log_file)

    if not args.repo:
        parser.print_help()
        print("\nSet --repo or the REPO_PATH environment variable.")
        return 1

    mode = args.strategy.lower()
    strategy = None
    if mode not in ('compare', 'none'):
        try:
            strategy = Strategy.parse(args.strategy)
        except ValueError as e:
            parser.error(str(e))

    try:
        dataset = build_dataset(
            args.repo,
            project=args.project,
            strategy=strategy,
            baseline_name=args.baseline,
            release_percentage=args.release_percentage,
        )
    except (TrackerError, RepositoryError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print_summary(dataset)

    if mode == 'compare':
        baseline = find_baseline(dataset.timeline, args.baseline)
        for result in compare_strategies(dataset.tickets, dataset.timeline, baseline).values():
            print_proportion(result)
    elif dataset.report.proportion:
        print_proportion(dataset.report.proportion)

    audit_tickets(dataset.tickets, project=dataset.report.project)

    if args.releases_csv:
        path = export_release_info(dataset.timeline, f"{dataset.report.project}ReleaseInfo.csv")
        print(f"\nSaved release info to: {path}")

    if args.output:
        df = tickets_to_dataframe(dataset.tickets)
        df.to_csv(args.output, index=False)
        print(f"Saved {len(df)} tickets to: {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
