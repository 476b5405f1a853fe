#!/usr/bin/env python3
"""Shared paths and tunables for the china playlist scripts."""

import os
import re

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
ROOT = os.path.abspath(os.path.join(SCRIPT_DIR, ".."))

CHINA_M3U = os.path.join(ROOT, "china.m3u")
# tvg-id -> last URL confirmed dead for that channel
DEAD_RECORD = os.path.join(ROOT, "china.dead.json")
STREAMS_DIR = os.path.join(ROOT, "streams")
ALIASES_FILE = os.path.join(ROOT, "china.aliases.json")

# Kept in the playlist so the next update run can look for a replacement.
BROKEN_URL = "http://0.0.0.0"

# iptv-org upstream files, highest priority first.
UPSTREAM_FILES = [
    "cn.m3u",
    "cn_cctv.m3u",
    "cn_cgtn.m3u",
    "cn_112114.m3u",
    "cn_yeslivetv.m3u",
]

FUZZY_SOURCE_URL = "https://raw.githubusercontent.com/fanmingming/live/main/tv/m3u/ipv6.m3u"
FUZZY_FETCH_TIMEOUT_SECONDS = 20
FUZZY_FETCH_RETRIES = 2

PROBE_WORKERS = 8
PROBE_TIMEOUT_SECONDS = 12
PROBE_RANGE = "bytes=0-1023"
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; IPTV checker)"

# Labels whose streams are expected to fail from the runner's location or schedule.
SKIP_LABEL_PATTERNS = [
    re.compile(r"地区限制"),
    re.compile(r"非全天直播"),
    re.compile(r"Geo-blocked", re.IGNORECASE),
    re.compile(r"Not 24/7", re.IGNORECASE),
]
