#!/usr/bin/env python3
"""
Match china.m3u entries against the upstream indexes and pick replacement URLs.

The name-keyed (fuzzy) source always wins over the tvg-id-keyed (exact) one:
once a usable fuzzy candidate exists for an entry the exact index is not
consulted, even when the fuzzy candidate changes nothing. Candidates whose URL
is the recorded dead URL for the channel are never selected; such a candidate
counts as no candidate, so the exact index gets its turn.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from dead_ledger import DeadLedger
from m3u_codec import ChannelEntry
from playlist_constants import BROKEN_URL
from upstream_index import Index, lookup_fuzzy

SOURCE_FUZZY = "fuzzy"
SOURCE_EXACT = "exact"


@dataclass
class UrlChange:
    tvg_id: str
    name: str
    source: str
    old_url: str
    new_url: str


@dataclass
class ReconcileReport:
    updated_fuzzy: int = 0
    updated_exact: int = 0
    unchanged: int = 0
    unresolved: List[str] = field(default_factory=list)
    not_found: List[str] = field(default_factory=list)
    missing_tvg_id: List[str] = field(default_factory=list)
    cleared: List[str] = field(default_factory=list)
    changes: List[UrlChange] = field(default_factory=list)

    @property
    def updated(self) -> int:
        return self.updated_fuzzy + self.updated_exact


def _apply_candidate(
    entry: ChannelEntry,
    candidate: ChannelEntry,
    source: str,
    ledger: DeadLedger,
    report: ReconcileReport,
) -> bool:
    """Returns True if the entry's URL/directives were replaced."""
    tvg_id = entry.tvg_id
    is_placeholder = entry.url == BROKEN_URL
    changed = (
        is_placeholder
        or candidate.url != entry.url
        or candidate.directives != entry.directives
    )

    if changed:
        report.changes.append(
            UrlChange(
                tvg_id=tvg_id,
                name=entry.name,
                source=source,
                old_url=entry.url,
                new_url=candidate.url,
            )
        )
        entry.url = candidate.url
        entry.directives = list(candidate.directives)

    if tvg_id and ledger.clear(tvg_id):
        report.cleared.append(tvg_id)
    return changed


def _usable(candidate: Optional[ChannelEntry], known_dead_url: Optional[str]) -> bool:
    return candidate is not None and candidate.url != known_dead_url


def reconcile_entry(
    entry: ChannelEntry,
    fuzzy_index: Index,
    exact_index: Index,
    ledger: DeadLedger,
    report: ReconcileReport,
) -> None:
    tvg_id = entry.tvg_id
    is_placeholder = entry.url == BROKEN_URL
    known_dead_url = ledger.recorded_dead(tvg_id)

    fuzzy_candidate = lookup_fuzzy(fuzzy_index, entry)
    if _usable(fuzzy_candidate, known_dead_url):
        if _apply_candidate(entry, fuzzy_candidate, SOURCE_FUZZY, ledger, report):
            report.updated_fuzzy += 1
        else:
            report.unchanged += 1
        return

    # No fuzzy candidate, or only the recorded dead URL: fall through to exact.
    if not tvg_id:
        report.missing_tvg_id.append(entry.name)
        report.unchanged += 1
        if is_placeholder:
            report.unresolved.append(entry.name)
        return

    exact_candidate = exact_index.get(tvg_id)
    if exact_candidate is None:
        report.unchanged += 1
        if is_placeholder:
            report.unresolved.append(tvg_id)
        else:
            report.not_found.append(tvg_id)
        return

    if _usable(exact_candidate, known_dead_url) and _apply_candidate(
        entry, exact_candidate, SOURCE_EXACT, ledger, report
    ):
        report.updated_exact += 1
        return

    report.unchanged += 1
    if is_placeholder:
        report.unresolved.append(tvg_id)


def reconcile_entries(
    entries: List[ChannelEntry],
    fuzzy_index: Index,
    exact_index: Index,
    ledger: DeadLedger,
) -> ReconcileReport:
    """Update entries in place, in playlist order, and report what changed."""
    report = ReconcileReport()
    for entry in entries:
        reconcile_entry(entry, fuzzy_index, exact_index, ledger, report)
    return report
