#!/usr/bin/env python3
"""
Probe every china.m3u stream URL and park dead ones.

A dead URL is replaced by the placeholder http://0.0.0.0 and recorded in
china.dead.json (tvg-id -> dead URL), so update_urls.py skips the same URL
upstream and looks for a replacement elsewhere.

Never probed:
  - entries tagged [地区限制] / [Geo-blocked]: the runner may be outside the region
  - entries tagged [非全天直播] / [Not 24/7]: may be off-air right now
  - entries already holding the placeholder
"""

from __future__ import annotations

import argparse
import re
import sys
import time
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Dict, Iterable, List, Pattern

from dead_ledger import DeadLedger, LedgerFormatError
from m3u_codec import ChannelEntry, read_playlist, write_playlist
from playlist_constants import (
    BROKEN_URL,
    CHINA_M3U,
    DEAD_RECORD,
    PROBE_TIMEOUT_SECONDS,
    PROBE_WORKERS,
    SKIP_LABEL_PATTERNS,
)
from stream_probe import Liveness, ProbeResult, probe_many, probe_url, should_skip


@dataclass
class FixReport:
    alive: int = 0
    unknown: int = 0
    dead: int = 0
    skipped: int = 0
    dead_entries: List[str] = field(default_factory=list)
    recovered: List[str] = field(default_factory=list)

    @property
    def tested(self) -> int:
        return self.alive + self.unknown + self.dead


def _clear_recovered(entry: ChannelEntry, ledger: DeadLedger, report: FixReport) -> None:
    tvg_id = entry.tvg_id
    if tvg_id and ledger.clear(tvg_id):
        report.recovered.append(tvg_id)


def fix_broken_entries(
    entries: List[ChannelEntry],
    ledger: DeadLedger,
    probe: Callable[[str], ProbeResult] = probe_url,
    workers: int = PROBE_WORKERS,
    skip_patterns: Iterable[Pattern] = SKIP_LABEL_PATTERNS,
    verbose: bool = False,
) -> FixReport:
    """
    Probe the testable entries concurrently and apply the verdicts.

    Each distinct URL is probed once. Verdicts are applied here, on the
    calling thread, as results arrive, so every entry is written by exactly
    one result and the counters need no locking. UNKNOWN counts as alive:
    the URL stays and any dead record for the channel is dropped.
    """
    report = FixReport()
    skip_patterns = list(skip_patterns)
    by_url: Dict[str, List[ChannelEntry]] = {}
    for entry in entries:
        if should_skip(entry, skip_patterns):
            report.skipped += 1
            continue
        by_url.setdefault(entry.url, []).append(entry)

    for result in probe_many(list(by_url), probe=probe, workers=workers):
        for entry in by_url[result.url]:
            if result.liveness is Liveness.DEAD:
                report.dead += 1
                report.dead_entries.append(entry.label())
                print(f"[DEAD] {entry.name} ({result.detail})")
                print(f"       {entry.url}")
                if entry.tvg_id:
                    ledger.record_dead(entry.tvg_id, entry.url)
                entry.url = BROKEN_URL
            elif result.liveness is Liveness.ALIVE:
                report.alive += 1
                _clear_recovered(entry, ledger, report)
                if verbose:
                    print(f"[OK] {entry.name} ({result.detail}, {result.elapsed_seconds:.2f}s)")
            else:
                report.unknown += 1
                _clear_recovered(entry, ledger, report)
                print(f"[WARN] {entry.name}: {result.detail}, assuming alive")

    return report


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Probe china.m3u streams and replace dead URLs with a placeholder")
    parser.add_argument("--playlist", default=CHINA_M3U, help="Working playlist to rewrite")
    parser.add_argument("--dead-record", default=DEAD_RECORD, help="Dead URL ledger (tvg-id -> URL)")
    parser.add_argument("--workers", type=int, default=PROBE_WORKERS, help="Parallel probes")
    parser.add_argument("--timeout", type=int, default=PROBE_TIMEOUT_SECONDS, help="Per-URL probe timeout (seconds)")
    parser.add_argument(
        "--skip-label",
        action="append",
        default=[],
        help="Extra regex; entries whose [label] tags match are never probed (repeatable)",
    )
    parser.add_argument("--verbose", action="store_true", help="Print every live URL too")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    started = time.time()
    skip_patterns = SKIP_LABEL_PATTERNS + [re.compile(label) for label in args.skip_label]
    try:
        header, entries = read_playlist(args.playlist)
        ledger = DeadLedger.load(args.dead_record)
        print(f"[INFO] {args.playlist}: {len(entries)} channels")

        report = fix_broken_entries(
            entries,
            ledger,
            probe=partial(probe_url, timeout=args.timeout),
            workers=args.workers,
            skip_patterns=skip_patterns,
            verbose=args.verbose,
        )

        write_playlist(args.playlist, header, entries)
        ledger.persist(args.dead_record)
    except (OSError, LedgerFormatError) as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1

    print("\n" + "=" * 40)
    print(f"Tested: {report.tested}  Skipped (tagged or placeholder): {report.skipped}")
    print(
        f"Alive: {report.alive}  Unknown (kept): {report.unknown}  "
        f"Dead (set to placeholder): {report.dead}"
    )
    if report.recovered:
        print(f"Recovered since last run: {', '.join(report.recovered)}")
    print(f"Dead records written to {args.dead_record} ({len(ledger)} total)")
    print(f"Duration: {time.time() - started:.1f}s")
    print("Run update_urls.py to look for replacements from other sources")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
