"""Shared fixtures: artifact files in a temp dir and the CarService example."""

import json

import pytest


CAR_X = {"__type__": "Car", "model": "X"}


def provider_record(method="findAll", args=("H1",), outcome=None, **extra):
    record = {
        "interfaceName": extra.pop("interface", "CarService"),
        "methodName": method,
        "parameterTypes": extra.pop("parameter_types", ["str"] * len(args)),
        "returnType": extra.pop("return_type", "list[Car]"),
        "inputPattern": [a if isinstance(a, dict) else {"exact": a} for a in args],
        "outcome": outcome if outcome is not None else {"returns": [CAR_X]},
    }
    record.update(extra)
    return record


def consumer_record(method="findAll", args=("H1",), outcome=None, **extra):
    record = {
        "interfaceName": extra.pop("interface", "CarService"),
        "methodName": method,
        "inputPattern": [a if isinstance(a, dict) else {"exact": a} for a in args],
        "interaction": extra.pop("interaction", "stub"),
    }
    if outcome is not None:
        record["outcome"] = outcome
    record.update(extra)
    return record


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep WIRECHECK_* settings and ./wirecheck.yaml out of tests."""
    for var in (
        "WIRECHECK_INCONSISTENCY",
        "WIRECHECK_WORKERS",
        "WIRECHECK_FORMAT",
        "WIRECHECK_FAIL_ON_EMPTY",
        "WIRECHECK_IGNORE_FIELDS",
        "WIRECHECK_OFFLINE",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def write_jsonl(tmp_path):
    """Write records as a JSONL artifact and return its path."""

    def _write(name, records):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("".join(json.dumps(r) + "\n" for r in records))
        return path

    return _write
