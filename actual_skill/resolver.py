"""Resolve caller-supplied id-or-name tokens against ledger records.

Two policies are applied per field: ``require_resolution`` fails the call
when nothing matches, ``try_resolution`` quietly yields ``None``.

When several records share a name the first one in iteration order wins;
no ambiguity error is raised.
"""

from __future__ import annotations

from typing import Iterable

from actual_skill.errors import ResolutionError


def find_by_name(name: str, records: Iterable[dict]) -> dict | None:
    needle = name.lower()
    for rec in records:
        if (rec.get("name") or "").lower() == needle:
            return rec
    return None


def find_entity(token: str, records: Iterable[dict]) -> dict | None:
    """Return the record whose id is *token*, else the first case-insensitive name match."""
    records = list(records)
    for rec in records:
        if rec.get("id") == token:
            return rec
    return find_by_name(token, records)


def require_resolution(token: str, records: Iterable[dict], kind: str) -> dict:
    found = find_entity(token, records)
    if found is None:
        raise ResolutionError(kind, token)
    return found


def try_resolution(token: str | None, records: Iterable[dict]) -> dict | None:
    if not token:
        return None
    return find_entity(token, records)


def name_map(records: Iterable[dict]) -> dict[str, str]:
    """id -> display name lookup."""
    return {r["id"]: r.get("name", "") for r in records if r.get("id")}
