"""
Proportion-based estimation of missing injected versions.

For tickets whose opening (OV), injected (IV) and fix (FV) versions are all
known, the proportion is (FV - IV) / (FV - OV) measured in days. The average
proportion over consistent tickets is then used to place the IV of the
remaining tickets between their OV and FV.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

import numpy as np

from .config import BASELINE_RELEASE, DEFAULT_PROPORTION
from .models import InjectedSource, Release, Ticket
from .releases import ReleaseTimeline

logger = logging.getLogger(__name__)


class Strategy(Enum):
    """How the baseline release is treated"""
    EXCLUDE_BASELINE = 'EXCLUDE_4_0_0'        # drop IV == baseline from the average
    FORCE_BASELINE_IV = 'FORCE_IV_TO_4_0_0'   # earliest AV == baseline forces IV = baseline

    @classmethod
    def parse(cls, value: str) -> 'Strategy':
        for member in cls:
            if value.upper() in (member.name, member.value):
                return member
        raise ValueError(f"Unknown strategy: {value}")


@dataclass
class ProportionResult:
    """Outcome of one estimation run"""
    strategy: Strategy
    proportion: float
    valid_tickets: int = 0
    inconsistent_tickets: int = 0
    forced: int = 0
    estimated: int = 0
    not_estimable: int = 0


def days_between(start: date, end: date) -> int:
    return (end - start).days


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def find_baseline(timeline: ReleaseTimeline, name: str = BASELINE_RELEASE) -> Release | None:
    """The named baseline release, or the earliest release if the name is unknown"""
    baseline = timeline.by_name(name)
    if baseline is None:
        baseline = timeline.first()
        if baseline is not None:
            logger.warning("Baseline release %s not found, using earliest release %s", name, baseline.name)
    return baseline


def ticket_proportion(ticket: Ticket) -> float | None:
    """(IV->FV) / (OV->FV) in days, or None if incomplete or temporally inconsistent"""
    if ticket.fixed is None or ticket.injected is None or ticket.opening is None:
        return None
    ov_to_fv = days_between(ticket.opening.release_date, ticket.fixed.release_date)
    iv_to_fv = days_between(ticket.injected.release_date, ticket.fixed.release_date)
    if ov_to_fv > 0 and iv_to_fv > 0 and iv_to_fv <= ov_to_fv:
        return iv_to_fv / ov_to_fv
    return None


def force_baseline_injected(tickets: list[Ticket], baseline: Release | None) -> int:
    """Set IV = baseline for tickets without IV whose earliest AV is the baseline"""
    if baseline is None:
        return 0
    forced = 0
    for ticket in tickets:
        if ticket.injected is not None or not ticket.affected_versions:
            continue
        if ticket.earliest_affected() == baseline:
            ticket.set_injected(baseline, InjectedSource.FORCED_BASELINE)
            logger.debug("Forced IV of %s to baseline %s", ticket.key, baseline.name)
            forced += 1
    return forced


def compute_proportion(tickets: list[Ticket], strategy: Strategy, baseline: Release | None,
                       default: float = DEFAULT_PROPORTION) -> tuple[float, int, int]:
    """
    Average proportion over tickets with consistent OV/IV/FV.

    Returns (proportion, valid count, inconsistent count). With no valid
    ticket the proportion is `default`.
    """
    ratios = []
    inconsistent = 0
    for ticket in tickets:
        if ticket.fixed is None or ticket.injected is None or ticket.opening is None:
            continue
        if strategy is Strategy.EXCLUDE_BASELINE and baseline is not None and ticket.injected == baseline:
            continue
        ratio = ticket_proportion(ticket)
        if ratio is None:
            inconsistent += 1
            logger.debug("Inconsistent versions for %s: OV=%s IV=%s FV=%s", ticket.key,
                         ticket.opening.name, ticket.injected.name, ticket.fixed.name)
            continue
        ratios.append(ratio)

    if inconsistent:
        logger.warning("%d tickets excluded from the proportion for inconsistent versions", inconsistent)
    if not ratios:
        logger.warning("No ticket usable for the proportion, defaulting to %.2f", default)
        return default, 0, inconsistent
    return float(np.mean(ratios)), len(ratios), inconsistent


def estimate_injected_date(ticket: Ticket, proportion: float) -> date | None:
    """Estimated injection date, FV - round(p * (FV - OV)) days"""
    if ticket.fixed is None or ticket.opening is None:
        return None
    fv_ov = days_between(ticket.opening.release_date, ticket.fixed.release_date)
    if fv_ov <= 0:
        return None
    fv_iv = round_half_up(proportion * fv_ov)
    if fv_iv <= 0:
        return None
    return ticket.fixed.release_date - timedelta(days=fv_iv)


def estimate_missing_injected(tickets: list[Ticket], timeline: ReleaseTimeline,
                              proportion: float) -> tuple[int, int]:
    """Fill unset IVs from the proportion; returns (estimated, not estimable)"""
    estimated = 0
    not_estimable = 0
    for ticket in tickets:
        if ticket.injected is not None:
            continue
        if ticket.fixed is None or ticket.opening is None:
            continue
        estimated_date = estimate_injected_date(ticket, proportion)
        if estimated_date is None:
            continue
        release = timeline.latest_on_or_before(estimated_date)
        if release is None:
            not_estimable += 1
            continue
        ticket.set_injected(release, InjectedSource.ESTIMATED)
        logger.debug("Estimated IV of %s: %s", ticket.key, release.name)
        estimated += 1
    return estimated, not_estimable


def apply_proportion_estimation(tickets: list[Ticket], timeline: ReleaseTimeline,
                                strategy: Strategy, baseline: Release = None,
                                default: float = DEFAULT_PROPORTION) -> ProportionResult:
    """Run one strategy: optional baseline forcing, average, then estimation"""
    forced = 0
    if strategy is Strategy.FORCE_BASELINE_IV:
        forced = force_baseline_injected(tickets, baseline)

    proportion, valid, inconsistent = compute_proportion(tickets, strategy, baseline, default)
    logger.info("Avg proportion (%s): %.2f over %d tickets", strategy.value, proportion, valid)

    estimated, not_estimable = estimate_missing_injected(tickets, timeline, proportion)
    logger.info("IVs estimated with %s: %d (%d not estimable)", strategy.value, estimated, not_estimable)
    if strategy is Strategy.FORCE_BASELINE_IV:
        logger.info("IVs forced to baseline with %s: %d", strategy.value, forced)

    return ProportionResult(
        strategy=strategy,
        proportion=proportion,
        valid_tickets=valid,
        inconsistent_tickets=inconsistent,
        forced=forced,
        estimated=estimated,
        not_estimable=not_estimable,
    )


def reset_estimated_injected(tickets: list[Ticket]) -> int:
    """Clear IVs set by forcing or estimation, keeping those derived from AV"""
    reset = 0
    for ticket in tickets:
        if ticket.injected_source in (InjectedSource.ESTIMATED, InjectedSource.FORCED_BASELINE):
            ticket.clear_injected()
            reset += 1
    return reset


def compare_strategies(tickets: list[Ticket], timeline: ReleaseTimeline,
                       baseline: Release = None) -> dict:
    """Run both strategies on the same tickets, resetting estimates in between"""
    results = {}
    for strategy in (Strategy.EXCLUDE_BASELINE, Strategy.FORCE_BASELINE_IV):
        reset_estimated_injected(tickets)
        results[strategy] = apply_proportion_estimation(tickets, timeline, strategy, baseline)
    return results
