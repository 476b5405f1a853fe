#!/usr/bin/env python3
"""
Sync china.m3u stream URLs from upstream playlists.

Only the URL (and its #EXTVLCOPT-style directive lines) of each entry is
replaced; group-title, Chinese names, logos and entry order are kept as-is.
Sources, in priority order:
  1. the remote fanmingming/live playlist, matched by channel name/aliases
  2. local iptv-org files under streams/, matched by tvg-id
URLs recorded in china.dead.json are never picked again for that channel.
"""

import argparse
import os
import sys

from channel_aliases import load_aliases
from dead_ledger import DeadLedger, LedgerFormatError
from m3u_codec import read_playlist, write_playlist
from playlist_constants import (
    ALIASES_FILE,
    CHINA_M3U,
    DEAD_RECORD,
    FUZZY_FETCH_TIMEOUT_SECONDS,
    FUZZY_SOURCE_URL,
    STREAMS_DIR,
)
from reconcile import ReconcileReport, reconcile_entries
from upstream_index import fetch_fuzzy_index, load_exact_index


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Update china.m3u stream URLs from upstream sources")
    parser.add_argument("--playlist", default=CHINA_M3U, help="Working playlist to rewrite")
    parser.add_argument("--dead-record", default=DEAD_RECORD, help="Dead URL ledger (tvg-id -> URL)")
    parser.add_argument("--streams-dir", default=STREAMS_DIR, help="Directory holding iptv-org cn*.m3u files")
    parser.add_argument("--fuzzy-url", default=FUZZY_SOURCE_URL, help="Remote playlist matched by channel name")
    parser.add_argument("--no-fuzzy", action="store_true", help="Skip the remote name-matched source")
    parser.add_argument("--aliases-file", default=ALIASES_FILE, help="JSON alias overrides (canonical -> [aliases])")
    parser.add_argument("--timeout", type=int, default=FUZZY_FETCH_TIMEOUT_SECONDS, help="Remote fetch timeout (seconds)")
    return parser.parse_args()


def print_report(report: ReconcileReport) -> None:
    for change in report.changes:
        print(f"[UPDATE] {change.name} ({change.tvg_id or '-'}) via {change.source}")
        print(f"         old: {change.old_url}")
        print(f"         new: {change.new_url}")

    print("\n" + "=" * 40)
    print(f"Updated: {report.updated} channels (fuzzy: {report.updated_fuzzy}, exact: {report.updated_exact})")
    print(f"Unchanged: {report.unchanged} channels")
    print(f"Dead records cleared: {len(report.cleared)}")

    if report.missing_tvg_id:
        print(f"\n[WARN] No tvg-id, exact source skipped ({len(report.missing_tvg_id)}):")
        for name in report.missing_tvg_id:
            print(f"  - {name}")
    if report.not_found:
        print(f"\n[WARN] Not found upstream, URL kept ({len(report.not_found)}):")
        for tvg_id in report.not_found:
            print(f"  - {tvg_id}")
    if report.unresolved:
        print(f"\n[WARN] Still broken, no usable replacement ({len(report.unresolved)}):")
        for tvg_id in report.unresolved:
            print(f"  - {tvg_id}")


def run(args: argparse.Namespace) -> ReconcileReport:
    header, entries = read_playlist(args.playlist)
    print(f"[INFO] {args.playlist}: {len(entries)} channels")

    exact_index = load_exact_index(args.streams_dir)
    print(f"[INFO] Exact index: {len(exact_index)} tvg-ids")

    fuzzy_index = {}
    if not args.no_fuzzy:
        aliases = load_aliases(args.aliases_file)
        fuzzy_index = fetch_fuzzy_index(args.fuzzy_url, aliases, timeout=args.timeout)

    ledger_exists = os.path.exists(args.dead_record)
    ledger = DeadLedger.load(args.dead_record)

    report = reconcile_entries(entries, fuzzy_index, exact_index, ledger)

    write_playlist(args.playlist, header, entries)
    if ledger_exists:
        ledger.persist(args.dead_record)
    return report


def main() -> int:
    args = parse_args()
    try:
        report = run(args)
    except (OSError, LedgerFormatError) as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1

    print_report(report)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
