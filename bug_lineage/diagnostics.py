"""
Dataset diagnostics for assessing labeling quality.
"""

import numpy as np

from .models import InjectedSource, Ticket
from .proportion import ticket_proportion


def audit_tickets(tickets: list[Ticket], project: str = '', verbose: bool = True) -> dict:
    """Report how much of a labeled ticket set has usable version information"""
    total = len(tickets)
    stats = {
        'with_commits': sum(1 for t in tickets if t.associated_commits),
        'with_opening': sum(1 for t in tickets if t.opening),
        'with_fixed': sum(1 for t in tickets if t.fixed),
        'with_affected': sum(1 for t in tickets if t.affected_versions),
        'with_injected': sum(1 for t in tickets if t.injected),
        'injected_from_affected': sum(1 for t in tickets if t.injected_source is InjectedSource.AFFECTED),
        'injected_forced': sum(1 for t in tickets if t.injected_source is InjectedSource.FORCED_BASELINE),
        'injected_estimated': sum(1 for t in tickets if t.injected_source is InjectedSource.ESTIMATED),
    }

    complete = [t for t in tickets if t.opening and t.fixed and t.injected]
    ratios = [r for r in (ticket_proportion(t) for t in complete) if r is not None]
    inconsistent = len(complete) - len(ratios)

    def share(n):
        return n / max(total, 1)

    # Quality assessment
    quality_score = 0
    issues = []

    if share(stats['with_commits']) >= 0.75:
        quality_score += 25
    elif share(stats['with_commits']) >= 0.5:
        quality_score += 15
    else:
        issues.append(f"Only {share(stats['with_commits']):.1%} of tickets linked to commits")

    if share(stats['with_fixed']) >= 0.9:
        quality_score += 25
    elif share(stats['with_fixed']) >= 0.7:
        quality_score += 15
    else:
        issues.append(f"Fix version missing for {total - stats['with_fixed']} tickets")

    if share(stats['with_injected']) >= 0.9:
        quality_score += 25
    elif share(stats['with_injected']) >= 0.7:
        quality_score += 15
    else:
        issues.append(f"Injected version missing for {total - stats['with_injected']} tickets")

    if complete and inconsistent / len(complete) <= 0.1:
        quality_score += 25
    elif complete:
        issues.append(f"{inconsistent} of {len(complete)} complete tickets have inverted OV/IV/FV")
    else:
        issues.append("No ticket has OV, IV and FV all set")

    avg_proportion = float(np.mean(ratios)) if ratios else None

    if verbose:
        print(f"\n{'='*60}")
        print(f"DATASET AUDIT{': ' + project if project else ''}")
        print(f"{'='*60}")
        print(f"\nTickets: {total}")
        print(f"\nCoverage:")
        print(f"  With commits:        {stats['with_commits']:>4} ({share(stats['with_commits']):.1%})")
        print(f"  Opening version:     {stats['with_opening']:>4} ({share(stats['with_opening']):.1%})")
        print(f"  Fix version:         {stats['with_fixed']:>4} ({share(stats['with_fixed']):.1%})")
        print(f"  Affected versions:   {stats['with_affected']:>4} ({share(stats['with_affected']):.1%})")
        print(f"  Injected version:    {stats['with_injected']:>4} ({share(stats['with_injected']):.1%})")
        print(f"    from AV:           {stats['injected_from_affected']:>4}")
        print(f"    forced baseline:   {stats['injected_forced']:>4}")
        print(f"    estimated:         {stats['injected_estimated']:>4}")
        if avg_proportion is not None:
            print(f"  Avg proportion:      {avg_proportion:>6.3f}")

        print(f"\nQuality Score: {quality_score}/100")
        if quality_score >= 75:
            print("  GOOD - Suitable for labeling")
        elif quality_score >= 50:
            print("  ~ FAIR - Usable with caveats")
        else:
            print("  POOR - Labels will be noisy")

        if issues:
            print(f"\nIssues:")
            for issue in issues:
                print(f"  - {issue}")

    return {
        'tickets': total,
        **stats,
        'complete': len(complete),
        'inconsistent': inconsistent,
        'avg_proportion': avg_proportion,
        'quality_score': quality_score,
        'issues': issues,
    }
