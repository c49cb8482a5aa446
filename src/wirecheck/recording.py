"""Helpers for test suites to emit wirecheck artifact records.

Usage from a provider's contract tests::

    from wirecheck.recording import contract_artifacts

    @pytest.fixture(scope="session")
    def contracts():
        with contract_artifacts("build/wirecheck/provider.jsonl") as rec:
            yield rec

    def test_find_all_by_header(contracts, car_service):
        cars = car_service.find_all("H1")
        assert cars == [Car("X")]
        contracts.example(
            "CarService", "findAll", ["H1"],
            parameter_types=["str"], return_type="list[Car]",
            returns=[{"__type__": "Car", "model": "X"}],
        )

and from a consumer's collaboration tests::

    with collaboration_artifacts("build/wirecheck/consumer.jsonl") as rec:
        rec.stub("CarService", "findAll", ["H1"], returns=[...])
        rec.verify("CarService", "save", [match_type("Car")])

Records are appended one per line, so several test processes may write
their own files into one directory and wirecheck reads the directory.
"""

from __future__ import annotations

import json
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Any, Generator, Sequence

_UNSET = object()


def match_exact(value: Any) -> dict[str, Any]:
    return {"exact": value}


def match_type(type_name: str) -> dict[str, Any]:
    return {"type": type_name}


def match_any() -> dict[str, Any]:
    return {"any": True}


def match_predicate(name: str, type_name: str | None = None, **params: Any) -> dict[str, Any]:
    data: dict[str, Any] = {"predicate": name}
    if type_name:
        data["type"] = type_name
    data.update(params)
    return data


def _arg(value: Any) -> dict[str, Any]:
    # Plain dict values are wrapped so they are not read as matchers.
    if isinstance(value, dict) and not _is_matcher(value):
        return match_exact(value)
    if isinstance(value, dict):
        return value
    return match_exact(value)


def _is_matcher(value: dict[str, Any]) -> bool:
    return (
        set(value) == {"exact"}
        or set(value) == {"type"}
        or value == {"any": True}
        or "predicate" in value
    )


def outcome_record(
    *,
    returns: Any = _UNSET,
    returns_type: str | None = None,
    throws: str | None = None,
    when: str | None = None,
) -> dict[str, Any] | None:
    chosen = sum(x is not None for x in (returns_type, throws)) + (returns is not _UNSET)
    if chosen > 1:
        raise ValueError("Give only one of returns, returns_type, throws")
    if returns is not _UNSET:
        return {"returns": returns}
    if returns_type is not None:
        return {"returnsType": returns_type}
    if throws is not None:
        data: dict[str, Any] = {"throws": throws}
        if when:
            data["when"] = when
        return data
    return None


class ArtifactWriter:
    """Appends artifact records to a JSONL file; safe to share between threads.

    The file is opened on the first write and stays open until :meth:`close`.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._file: IO[str] | None = None
        self.count = 0

    def write(self, record: dict[str, Any]) -> None:
        line = json.dumps(record, sort_keys=True, default=str)
        with self._lock:
            if self._file is None:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self._file = open(self.path, "a", encoding="utf-8")
            self._file.write(line + "\n")
            self._file.flush()
            self.count += 1

    @property
    def closed(self) -> bool:
        return self._file is None

    def close(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None


def _record(
    interface: str,
    method: str,
    args: Sequence[Any],
    *,
    parameter_types: Sequence[str] | None,
    return_type: str | None,
    outcome: dict[str, Any] | None,
    test: str,
) -> dict[str, Any]:
    record: dict[str, Any] = {
        "interfaceName": interface,
        "methodName": method,
        "inputPattern": [_arg(a) for a in args],
    }
    if parameter_types is not None:
        record["parameterTypes"] = list(parameter_types)
    if return_type is not None:
        record["returnType"] = return_type
    if outcome is not None:
        record["outcome"] = outcome
    if test:
        record["test"] = test
    return record


class ContractRecorder:
    """Records provider behavioral examples."""

    def __init__(self, writer: ArtifactWriter) -> None:
        self.writer = writer

    def example(
        self,
        interface: str,
        method: str,
        args: Sequence[Any],
        *,
        parameter_types: Sequence[str],
        return_type: str | None = None,
        returns: Any = _UNSET,
        returns_type: str | None = None,
        throws: str | None = None,
        when: str | None = None,
        test: str = "",
    ) -> dict[str, Any]:
        outcome = outcome_record(returns=returns, returns_type=returns_type, throws=throws, when=when)
        if outcome is None:
            raise ValueError("A contract example must declare returns, returns_type or throws")
        record = _record(
            interface, method, args,
            parameter_types=parameter_types, return_type=return_type,
            outcome=outcome, test=test or _current_test(),
        )
        self.writer.write(record)
        return record


class CollaborationRecorder:
    """Records consumer stub and verify interactions."""

    def __init__(self, writer: ArtifactWriter) -> None:
        self.writer = writer

    def stub(
        self,
        interface: str,
        method: str,
        args: Sequence[Any],
        *,
        returns: Any = _UNSET,
        returns_type: str | None = None,
        throws: str | None = None,
        parameter_types: Sequence[str] | None = None,
        return_type: str | None = None,
        test: str = "",
    ) -> dict[str, Any]:
        """Record a stubbed call: ``when(interface.method(args)).then(outcome)``."""
        record = _record(
            interface, method, args,
            parameter_types=parameter_types, return_type=return_type,
            outcome=outcome_record(returns=returns, returns_type=returns_type, throws=throws),
            test=test or _current_test(),
        )
        record["interaction"] = "stub"
        self.writer.write(record)
        return record

    def verify(
        self,
        interface: str,
        method: str,
        args: Sequence[Any],
        *,
        parameter_types: Sequence[str] | None = None,
        test: str = "",
    ) -> dict[str, Any]:
        """Record a verified call: ``verify(interface).method(args)``."""
        record = _record(
            interface, method, args,
            parameter_types=parameter_types, return_type=None,
            outcome=None, test=test or _current_test(),
        )
        record["interaction"] = "verify"
        self.writer.write(record)
        return record


def _current_test() -> str:
    """Return the running pytest node id, if any."""
    current = os.environ.get("PYTEST_CURRENT_TEST", "")
    # "path::test_name (call)"
    return current.rsplit(" ", 1)[0] if current else ""


@contextmanager
def contract_artifacts(path: str | Path) -> Generator[ContractRecorder, None, None]:
    """Provider-side recorder writing to *path*."""
    writer = ArtifactWriter(path)
    try:
        yield ContractRecorder(writer)
    finally:
        writer.close()


@contextmanager
def collaboration_artifacts(path: str | Path) -> Generator[CollaborationRecorder, None, None]:
    """Consumer-side recorder writing to *path*."""
    writer = ArtifactWriter(path)
    try:
        yield CollaborationRecorder(writer)
    finally:
        writer.close()
