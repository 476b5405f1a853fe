#!/usr/bin/env python3
"""
Run Pipeline (Dead-Link-First Mode)

Flow:
  1. Probe china.m3u streams, park dead URLs behind the placeholder and record
     them in china.dead.json
  2. Pull replacement URLs from the name-matched remote source and the
     tvg-id-matched iptv-org files, skipping recorded dead URLs
"""

import argparse
import os
import subprocess
import sys

from playlist_constants import (
    CHINA_M3U,
    DEAD_RECORD,
    FUZZY_SOURCE_URL,
    PROBE_TIMEOUT_SECONDS,
    PROBE_WORKERS,
    SCRIPT_DIR,
    STREAMS_DIR,
)


def run_step(script_name, description, extra_args=None):
    print(f"\n{'=' * 60}")
    print(f"STEP: {description}")
    print(f"Running {script_name}...")
    print(f"{'=' * 60}\n")

    cmd = [sys.executable, "-u", os.path.join(SCRIPT_DIR, script_name)]
    if extra_args:
        cmd.extend(extra_args)

    try:
        subprocess.run(cmd, check=True)
    except subprocess.CalledProcessError as exc:
        print(f"\n[ERROR] {script_name} failed with return code {exc.returncode}.")
        return False
    except OSError as exc:
        print(f"\n[ERROR] Failed to run {script_name}: {exc}")
        return False

    print(f"\n[SUCCESS] {script_name} completed.")
    return True


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Probe then update the china playlist.")

    parser.add_argument("--playlist", default=CHINA_M3U, help="Working playlist")
    parser.add_argument("--dead-record", default=DEAD_RECORD, help="Dead URL ledger")
    parser.add_argument("--streams-dir", default=STREAMS_DIR, help="iptv-org streams directory")
    parser.add_argument("--fuzzy-url", default=FUZZY_SOURCE_URL, help="Remote name-matched playlist")
    parser.add_argument("--skip-fix", action="store_true", help="Only run the update step")

    # Probe settings
    parser.add_argument("--probe-workers", type=int, default=PROBE_WORKERS, help="Parallel probes for fix_broken.py")
    parser.add_argument("--probe-timeout", type=int, default=PROBE_TIMEOUT_SECONDS, help="Probe timeout for fix_broken.py")

    return parser.parse_args()


def main() -> int:
    args = parse_args()
    ledger_args = ["--playlist", args.playlist, "--dead-record", args.dead_record]

    # 1. Mark dead URLs.
    if not args.skip_fix:
        fix_args = ledger_args + [
            "--workers",
            str(args.probe_workers),
            "--timeout",
            str(args.probe_timeout),
        ]
        if not run_step("fix_broken.py", "Probing Streams and Parking Dead URLs", extra_args=fix_args):
            return 1

    # 2. Refill from upstream.
    update_args = ledger_args + [
        "--streams-dir",
        args.streams_dir,
        "--fuzzy-url",
        args.fuzzy_url,
    ]
    if not run_step("update_urls.py", "Updating URLs from Upstream Sources", extra_args=update_args):
        return 1

    print(f"\n{'=' * 60}")
    print("DEAD-LINK-FIRST PIPELINE COMPLETE")
    print(f"Playlist: {args.playlist}")
    print(f"{'=' * 60}\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
