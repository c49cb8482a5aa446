"""Structural comparison of declared and expected values.

Used by the matcher to judge exact-value outcomes.  ``compare_values``
diffs two JSON-like objects and returns human-readable diff lines; an empty
list means the values are structurally equal.  Fields listed in
``ignore_fields`` (timestamps, generated ids...) are skipped at any depth.
"""

from __future__ import annotations

from typing import Any

from wirecheck.model import TYPE_TAG


def compare_values(
    expected: Any,
    declared: Any,
    *,
    ignore_fields: set[str] | frozenset[str] | None = None,
    path: str = "$",
) -> list[str]:
    """Compare a consumer's expected value with a provider's declared one.

    Returns a list of diff descriptions, empty if the values match.
    """
    diffs: list[str] = []
    _compare(expected, declared, set(ignore_fields or ()), path, diffs)
    return diffs


def values_equal(expected: Any, declared: Any, *, ignore_fields: set[str] | frozenset[str] | None = None) -> bool:
    return not compare_values(expected, declared, ignore_fields=ignore_fields)


def _compare(
    expected: Any, declared: Any, skip: set[str], path: str, diffs: list[str]
) -> None:
    if isinstance(expected, dict) and isinstance(declared, dict):
        all_keys = set(expected.keys()) | set(declared.keys())
        for key in sorted(all_keys, key=str):
            if key in skip:
                continue
            child_path = f"{path}.{key}"
            if key not in expected:
                # A consumer may leave out the type tag of a domain object.
                if key == TYPE_TAG:
                    continue
                diffs.append(f"{child_path}: missing in expectation (contract has {type(declared[key]).__name__})")
            elif key not in declared:
                if key == TYPE_TAG:
                    continue
                diffs.append(f"{child_path}: not declared by contract")
            else:
                _compare(expected[key], declared[key], skip, child_path, diffs)
    elif isinstance(expected, (list, tuple)) and isinstance(declared, (list, tuple)):
        if len(expected) != len(declared):
            diffs.append(
                f"{path}: list length differs (expected={len(expected)}, declared={len(declared)})"
            )
        for i, (e_item, d_item) in enumerate(zip(expected, declared)):
            _compare(e_item, d_item, skip, f"{path}[{i}]", diffs)
    elif _numeric(expected) and _numeric(declared):
        if expected != declared:
            diffs.append(f"{path}: value differs (expected={expected!r}, declared={declared!r})")
    elif type(expected) != type(declared):
        diffs.append(
            f"{path}: type differs (expected={type(expected).__name__}, declared={type(declared).__name__})"
        )
    elif expected != declared:
        e_str = str(expected)[:80]
        d_str = str(declared)[:80]
        diffs.append(f"{path}: value differs (expected={e_str!r}, declared={d_str!r})")


def _numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
