#!/usr/bin/env python3
"""
Lookup tables over upstream playlists.

Exact index: tvg-id -> entry, built from the local iptv-org files in priority
order. Fuzzy index: normalized channel name (and tvg-id when the upstream
entry has one) -> entry, built from a single remote playlist plus the alias
table. In both, the first entry seen for a key wins.
"""

from __future__ import annotations

import os
from typing import Dict, Iterable, List, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from m3u_codec import ChannelEntry, parse_m3u, read_playlist
from playlist_constants import (
    DEFAULT_USER_AGENT,
    FUZZY_FETCH_RETRIES,
    FUZZY_FETCH_TIMEOUT_SECONDS,
    UPSTREAM_FILES,
)

Index = Dict[str, ChannelEntry]


def _insert_if_absent(index: Index, key: str, entry: ChannelEntry) -> bool:
    if not key or key in index:
        return False
    index[key] = entry
    return True


def build_exact_index(sources: Iterable[Tuple[str, List[ChannelEntry]]]) -> Index:
    """sources: (label, entries) pairs, highest priority first."""
    index: Index = {}
    for _label, entries in sources:
        for entry in entries:
            _insert_if_absent(index, entry.tvg_id, entry)
    return index


def load_exact_index(streams_dir: str, filenames: List[str] = UPSTREAM_FILES) -> Index:
    sources: List[Tuple[str, List[ChannelEntry]]] = []
    for filename in filenames:
        filepath = os.path.join(streams_dir, filename)
        if not os.path.exists(filepath):
            print(f"[INFO] Upstream file not found, skipping: {filepath}")
            continue
        _header, entries = read_playlist(filepath)
        sources.append((filename, entries))
    return build_exact_index(sources)


def resolve_aliases(index: Index, aliases: Dict[str, List[str]]) -> None:
    for canonical, spellings in aliases.items():
        entry = index.get(canonical)
        if entry is not None:
            for spelling in spellings:
                _insert_if_absent(index, spelling, entry)
            continue
        for spelling in spellings:
            if spelling in index:
                index[canonical] = index[spelling]
                break


def build_fuzzy_index(entries: Iterable[ChannelEntry], aliases: Optional[Dict[str, List[str]]] = None) -> Index:
    index: Index = {}
    for entry in entries:
        _insert_if_absent(index, entry.key_name, entry)
        _insert_if_absent(index, entry.tvg_id, entry)
    resolve_aliases(index, aliases or {})
    return index


def lookup_fuzzy(index: Index, entry: ChannelEntry) -> Optional[ChannelEntry]:
    candidate = index.get(entry.key_name) if entry.key_name else None
    if candidate is None and entry.tvg_id:
        candidate = index.get(entry.tvg_id)
    return candidate


def create_session(retries: int = FUZZY_FETCH_RETRIES) -> requests.Session:
    session = requests.Session()
    retry = Retry(
        total=retries,
        backoff_factor=0.5,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers["User-Agent"] = DEFAULT_USER_AGENT
    return session


def fetch_fuzzy_index(
    url: str,
    aliases: Optional[Dict[str, List[str]]] = None,
    session: Optional[requests.Session] = None,
    timeout: float = FUZZY_FETCH_TIMEOUT_SECONDS,
) -> Index:
    """Fetch the remote playlist and index it. Any failure yields an empty index."""
    http = session or create_session()
    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        print(f"[WARN] Fuzzy source unavailable ({exc}); using exact index only")
        return {}

    _header, entries = parse_m3u(response.content.decode("utf-8", errors="replace"))
    if not entries:
        print(f"[WARN] Fuzzy source returned no channels: {url}")
        return {}

    index = build_fuzzy_index(entries, aliases)
    print(f"[INFO] Fuzzy source: {len(entries)} channels, {len(index)} lookup keys")
    return index
