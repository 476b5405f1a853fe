#!/usr/bin/env python3
"""
M3U playlist parsing/serialization for the china playlist scripts.

Only the fields needed for URL reconciliation are interpreted. The #EXTINF
line is carried verbatim, directive lines stay attached to their entry and
the first line of the file is kept aside as the header.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import List, Tuple

EXTINF_PREFIX = "#EXTINF"
DIRECTIVE_PREFIXES = ("#EXTVLCOPT", "#KODIPROP", "#EXTHTTP")

TVG_ID_RE = re.compile(r'tvg-id="([^"]*)"')
LABEL_RE = re.compile(r"\[([^\]]+)\]")
BRACKETED_RE = re.compile(r"\[[^\]]*\]|\([^)]*\)|【[^】]*】|（[^）]*）")
RESOLUTION_RE = re.compile(
    r"(?<![a-z0-9-])(?:4k|8k|uhd|fhd|hd|sd|1080[pi]|720p|576i|480p)(?![a-z0-9])"
    r"|超高清|超清|高清|标清",
    re.IGNORECASE,
)
WHITESPACE_RE = re.compile(r"\s+")


def extract_tvg_id(extinf: str) -> str:
    match = TVG_ID_RE.search(extinf or "")
    return match.group(1) if match else ""


def extract_display_name(extinf: str) -> str:
    """Text after the first comma that is not inside a quoted attribute value."""
    in_quotes = False
    for idx, char in enumerate(extinf or ""):
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            return extinf[idx + 1:].strip()
    return ""


def extract_labels(extinf: str) -> str:
    return " ".join(f"[{label}]" for label in LABEL_RE.findall(extract_display_name(extinf)))


def normalize_name(name: str) -> str:
    """
    Loose matching key for a channel name: bracketed tags and resolution
    markers removed, whitespace dropped, case folded.
    "CCTV-5+ 体育赛事 [HD]" and "cctv-5+体育赛事" share a key.
    """
    value = BRACKETED_RE.sub(" ", name or "")
    value = RESOLUTION_RE.sub(" ", value)
    return WHITESPACE_RE.sub("", value).casefold()


@dataclass
class ChannelEntry:
    extinf: str
    url: str
    directives: List[str] = field(default_factory=list)

    @property
    def tvg_id(self) -> str:
        return extract_tvg_id(self.extinf)

    @property
    def name(self) -> str:
        return extract_display_name(self.extinf)

    @property
    def labels(self) -> str:
        return extract_labels(self.extinf)

    @property
    def key_name(self) -> str:
        return normalize_name(self.name)

    def label(self) -> str:
        if self.tvg_id:
            return f"{self.name} ({self.tvg_id})"
        return self.name


def _is_directive(line: str) -> bool:
    return line.startswith(DIRECTIVE_PREFIXES)


def parse_entries(lines: List[str]) -> List[ChannelEntry]:
    entries: List[ChannelEntry] = []
    i = 0
    total = len(lines)

    while i < total:
        line = lines[i]
        if not line.startswith(EXTINF_PREFIX):
            i += 1
            continue

        extinf = line
        directives: List[str] = []
        i += 1
        # Collect directives up to the URL, skipping blanks and stray comments.
        # A new #EXTINF means this entry had no URL.
        while i < total and (not lines[i] or (lines[i].startswith("#") and not lines[i].startswith(EXTINF_PREFIX))):
            if _is_directive(lines[i]):
                directives.append(lines[i])
            i += 1

        if i < total and not lines[i].startswith("#"):
            entries.append(ChannelEntry(extinf=extinf, url=lines[i], directives=directives))
            i += 1

    return entries


def parse_m3u(text: str) -> Tuple[str, List[ChannelEntry]]:
    """Return (header line, entries). The header is never treated as an entry."""
    lines = [line.rstrip() for line in (text or "").split("\n")]
    return lines[0], parse_entries(lines[1:])


def serialize_m3u(header: str, entries: List[ChannelEntry]) -> str:
    lines: List[str] = [header]
    for entry in entries:
        lines.append(entry.extinf)
        lines.extend(entry.directives)
        lines.append(entry.url)
    lines.append("")
    return "\n".join(lines)


def read_playlist(path: str) -> Tuple[str, List[ChannelEntry]]:
    with open(path, "r", encoding="utf-8") as f:
        return parse_m3u(f.read())


def write_playlist(path: str, header: str, entries: List[ChannelEntry]) -> None:
    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8", newline="\n") as f:
        f.write(serialize_m3u(header, entries))
    os.replace(tmp, path)
