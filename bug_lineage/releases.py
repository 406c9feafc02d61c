"""
Release timeline: date-ordered releases with date-indexed lookups.
"""

import logging
import math
from bisect import bisect_left, bisect_right
from datetime import date, datetime
from pathlib import Path

import pandas as pd

from .config import RELEASE_DATE_FORMAT
from .models import Release

logger = logging.getLogger(__name__)


class ReleaseTimeline:
    """
    Releases kept sorted by release date.

    Ordering uses dates only. Releases sharing a date keep their insertion
    order, and every query resolves such a group to its first member, so
    first_on_or_after(d) and latest_on_or_before(d) agree when d is a
    release date.
    """

    def __init__(self, releases=None):
        self._releases: list[Release] = []
        self._dates: list[date] = []
        for release in releases or []:
            self.add(release)

    def add(self, release: Release) -> bool:
        """Insert a release; releases without a date are logged and skipped"""
        if not isinstance(release.release_date, date):
            logger.warning("Release %s has no release date, skipping", release.name or release.id)
            return False
        # bisect_right keeps input order among equal dates
        idx = bisect_right(self._dates, release.release_date)
        self._releases.insert(idx, release)
        self._dates.insert(idx, release.release_date)
        return True

    def all(self) -> list[Release]:
        return list(self._releases)

    def __len__(self) -> int:
        return len(self._releases)

    def __iter__(self):
        return iter(self._releases)

    def first(self) -> Release | None:
        return self._releases[0] if self._releases else None

    def by_id(self, release_id: str) -> Release | None:
        for release in self._releases:
            if release.id == release_id:
                return release
        return None

    def by_name(self, name: str) -> Release | None:
        for release in self._releases:
            if release.name == name:
                return release
        return None

    def _first_with_date(self, day: date) -> Release:
        return self._releases[bisect_left(self._dates, day)]

    def first_on_or_after(self, day: date) -> Release | None:
        """Earliest release dated on or after `day`"""
        idx = bisect_left(self._dates, day)
        if idx == len(self._releases):
            return None
        return self._releases[idx]

    def latest_on_or_before(self, day: date) -> Release | None:
        """Latest release dated on or before `day`"""
        idx = bisect_right(self._dates, day)
        if idx == 0:
            return None
        return self._first_with_date(self._dates[idx - 1])

    def latest_strictly_before(self, day: date) -> Release | None:
        """Latest release dated strictly before `day`"""
        idx = bisect_left(self._dates, day)
        if idx == 0:
            return None
        return self._first_with_date(self._dates[idx - 1])

    def truncated(self, percentage: float) -> 'ReleaseTimeline':
        """Timeline with only the first ceil(n * percentage) releases"""
        if not 0 < percentage <= 1:
            raise ValueError(f"percentage must be in (0, 1], got {percentage}")
        keep = math.ceil(len(self._releases) * percentage)
        return ReleaseTimeline(self._releases[:keep])

    @classmethod
    def from_json(cls, entries: list[dict]) -> 'ReleaseTimeline':
        """Build a timeline from a Jira `project/<NAME>/versions` payload"""
        timeline = cls()
        for entry in entries:
            release_id = str(entry.get('id', ''))
            name = str(entry.get('name', ''))
            raw_date = entry.get('releaseDate')
            if not raw_date:
                logger.warning("Release %s (%s) has no release date", name, release_id)
                continue
            try:
                release_date = datetime.strptime(raw_date, RELEASE_DATE_FORMAT).date()
            except ValueError:
                logger.warning("Release %s has unparseable date %r", name, raw_date)
                continue
            timeline.add(Release(
                id=release_id,
                name=name,
                release_date=release_date,
                released=bool(entry.get('released', False)),
            ))

        for release in timeline:
            logger.info("Available release: %s (%s)", release.name, release.release_date)
        return timeline


def export_release_info(timeline: ReleaseTimeline, path: str | Path) -> Path:
    """Write `Index;Release ID;Release Name;Date` rows, one per release"""
    path = Path(path)
    df = pd.DataFrame(
        [
            {
                'Index': i,
                'Release ID': r.id,
                'Release Name': r.name,
                'Date': r.release_date.strftime(RELEASE_DATE_FORMAT),
            }
            for i, r in enumerate(timeline, 1)
        ],
        columns=['Index', 'Release ID', 'Release Name', 'Date'],
    )
    df.to_csv(path, sep=';', index=False)
    logger.info("Saved %d releases to %s", len(df), path)
    return path
