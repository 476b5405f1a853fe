#!/usr/bin/env python3
"""Alternate channel spellings used by the name-keyed upstream index."""

from __future__ import annotations

import json
import os
from copy import deepcopy
from typing import Dict, List, Optional

from m3u_codec import normalize_name

# canonical name -> alternate spellings seen in upstream playlists.
# Keys and values are normalized with normalize_name() on load.
DEFAULT_ALIASES: Dict[str, List[str]] = {
    "cctv1": ["cctv-1", "cctv-1综合", "cctv1综合"],
    "cctv2": ["cctv-2", "cctv-2财经", "cctv2财经"],
    "cctv3": ["cctv-3", "cctv-3综艺", "cctv3综艺"],
    "cctv4": ["cctv-4", "cctv-4中文国际", "cctv4中文国际"],
    "cctv5": ["cctv-5", "cctv-5体育", "cctv5体育"],
    "cctv5+": ["cctv-5+", "cctv-5+体育赛事", "cctv5+体育赛事"],
    "cctv6": ["cctv-6", "cctv-6电影", "cctv6电影"],
    "cctv7": ["cctv-7", "cctv-7国防军事", "cctv7国防军事"],
    "cctv8": ["cctv-8", "cctv-8电视剧", "cctv8电视剧"],
    "cctv9": ["cctv-9", "cctv-9纪录", "cctv9纪录"],
    "cctv10": ["cctv-10", "cctv-10科教", "cctv10科教"],
    "cctv11": ["cctv-11", "cctv-11戏曲", "cctv11戏曲"],
    "cctv12": ["cctv-12", "cctv-12社会与法", "cctv12社会与法"],
    "cctv13": ["cctv-13", "cctv-13新闻", "cctv13新闻"],
    "cctv14": ["cctv-14", "cctv-14少儿", "cctv14少儿"],
    "cctv15": ["cctv-15", "cctv-15音乐", "cctv15音乐"],
    "cctv16": ["cctv-16", "cctv-16奥林匹克", "cctv16奥林匹克"],
    "cctv17": ["cctv-17", "cctv-17农业农村", "cctv17农业农村"],
    "cgtn": ["cgtn英语", "cgtnenglish"],
    "cgtn纪录": ["cgtndocumentary", "cgtn记录"],
    "湖南卫视": ["hunantv", "湖南电视台"],
    "浙江卫视": ["zhejiangtv"],
    "江苏卫视": ["jiangsutv"],
    "东方卫视": ["dragontv", "上海东方卫视"],
    "北京卫视": ["btv卫视", "beijingtv"],
}


def _normalize_aliases(raw: Dict) -> Dict[str, List[str]]:
    aliases: Dict[str, List[str]] = {}
    for canonical, spellings in raw.items():
        key = normalize_name(str(canonical))
        if not key or not isinstance(spellings, list):
            continue
        values = aliases.setdefault(key, [])
        for spelling in spellings:
            value = normalize_name(str(spelling))
            if value and value != key and value not in values:
                values.append(value)
    return aliases


def load_aliases(path: Optional[str]) -> Dict[str, List[str]]:
    """Load an alias override file and merge it over the defaults."""
    aliases = deepcopy(DEFAULT_ALIASES)
    if not path or not os.path.exists(path):
        return _normalize_aliases(aliases)
    try:
        with open(path, "r", encoding="utf-8") as handle:
            loaded = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        print(f"[WARN] Ignoring alias file {path}: {exc}")
        return _normalize_aliases(aliases)
    if isinstance(loaded, dict):
        aliases.update(loaded)
    return _normalize_aliases(aliases)
