#!/usr/bin/env python3
"""Persistent record of stream URLs confirmed dead, keyed by tvg-id."""

from __future__ import annotations

import json
import os
from typing import Dict, Optional


class LedgerFormatError(ValueError):
    pass


class DeadLedger:
    def __init__(self, records: Optional[Dict[str, str]] = None):
        self._records: Dict[str, str] = dict(records or {})

    @classmethod
    def load(cls, path: str) -> "DeadLedger":
        if not os.path.exists(path):
            return cls()
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as exc:
                raise LedgerFormatError(f"{path} is not valid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise LedgerFormatError(f"{path} must hold a JSON object of tvg-id -> dead URL")
        for tvg_id, url in data.items():
            if not isinstance(url, str):
                raise LedgerFormatError(f"{path}: dead URL for {tvg_id!r} is not a string")
        return cls(data)

    def persist(self, path: str) -> None:
        tmp = path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self._records, f, indent=2, ensure_ascii=False)
        os.replace(tmp, path)

    def recorded_dead(self, tvg_id: str) -> Optional[str]:
        if not tvg_id:
            return None
        return self._records.get(tvg_id)

    def record_dead(self, tvg_id: str, url: str) -> None:
        self._records[tvg_id] = url

    def clear(self, tvg_id: str) -> bool:
        """Drop the record for tvg_id. Returns True if one existed."""
        return self._records.pop(tvg_id, None) is not None

    def as_dict(self) -> Dict[str, str]:
        return dict(self._records)

    def __contains__(self, tvg_id: object) -> bool:
        return tvg_id in self._records

    def __len__(self) -> int:
        return len(self._records)
