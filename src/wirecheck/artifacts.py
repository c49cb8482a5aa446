"""Artifact records: the interchange format between test suites and wirecheck.

Both provider contract tests and consumer collaboration tests emit the same
record shape, one record per line in a ``.jsonl`` file::

    {"interfaceName": "CarService", "methodName": "findAll",
     "parameterTypes": ["str"], "returnType": "list[Car]",
     "inputPattern": [{"exact": "H1"}],
     "outcome": {"returns": [{"__type__": "Car", "model": "X"}]},
     "test": "tests/test_car_service.py::test_find_all"}

``.json`` and ``.yaml`` documents holding a list of records (or a mapping
with a ``records`` key) are accepted as well.  An artifact *set* is a file,
a directory of such files (read in sorted order) or an ``http(s)://`` URL.

Argument matchers in ``inputPattern``:

    {"exact": <value>}                  the argument equals <value>
    {"type": "str"}                     any argument of that type
    {"any": true}                       any argument at all
    {"predicate": "regex", "pattern": "^H", "type": "str"}
    {"predicate": "range", "min": 0, "max": 10}
    {"predicate": "one_of", "values": ["a", "b"]}
    <non-object value>                  shorthand for {"exact": <value>}

Outcomes: ``{"returns": v}``, ``{"returnsType": "list"}``,
``{"throws": "NotFound", "when": "..."}`` or ``{"any": true}``.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from wirecheck.errors import ArtifactError
from wirecheck.model import ArgMatcher, Outcome, SourceRef
from wirecheck.remote import ReadOnlyFetcher, is_remote

logger = logging.getLogger(__name__)

LINE_SUFFIXES = {".jsonl", ".ndjson"}
DOCUMENT_SUFFIXES = {".json", ".yaml", ".yml"}
ARTIFACT_SUFFIXES = LINE_SUFFIXES | DOCUMENT_SUFFIXES

KNOWN_PREDICATES = {"regex", "range", "one_of"}


# =============================================================================
# Matcher / outcome parsing
# =============================================================================


def parse_matcher(raw: Any) -> ArgMatcher:
    """Turn one ``inputPattern`` entry into an :class:`ArgMatcher`."""
    if not isinstance(raw, dict):
        return ArgMatcher.exact(raw)

    if "exact" in raw:
        if len(raw) != 1:
            raise ValueError(f"exact matcher takes no other keys: {raw!r}")
        return ArgMatcher.exact(raw["exact"])

    if "predicate" in raw:
        name = raw["predicate"]
        if not isinstance(name, str) or not name:
            raise ValueError(f"predicate name must be a non-empty string: {raw!r}")
        type_name = raw.get("type")
        if type_name is not None and not isinstance(type_name, str):
            raise ValueError(f"predicate type must be a string: {raw!r}")
        params = {k: v for k, v in raw.items() if k not in ("predicate", "type")}
        _check_predicate(name, params)
        return ArgMatcher.satisfying(name, type_name, **params)

    if "type" in raw:
        if len(raw) != 1 or not isinstance(raw["type"], str) or not raw["type"]:
            raise ValueError(f"type matcher must be {{'type': '<name>'}}: {raw!r}")
        return ArgMatcher.of_type(raw["type"])

    if raw.get("any") is True and len(raw) == 1:
        return ArgMatcher.anything()

    raise ValueError(f"unrecognised argument matcher: {raw!r}")


def _check_predicate(name: str, params: dict[str, Any]) -> None:
    if name == "regex":
        pattern = params.get("pattern")
        if not isinstance(pattern, str):
            raise ValueError("regex predicate requires a string 'pattern'")
        try:
            re.compile(pattern)
        except re.error as exc:
            raise ValueError(f"invalid regex {pattern!r}: {exc}") from exc
    elif name == "range":
        if "min" not in params and "max" not in params:
            raise ValueError("range predicate requires 'min' and/or 'max'")
        for bound in ("min", "max"):
            value = params.get(bound)
            if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
                raise ValueError(f"range predicate '{bound}' must be a number")
    elif name == "one_of":
        if not isinstance(params.get("values"), list):
            raise ValueError("one_of predicate requires a list 'values'")


def parse_outcome(raw: Any) -> Outcome | None:
    """Turn a record's ``outcome`` into an :class:`Outcome` (``None`` if absent)."""
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValueError(f"outcome must be an object: {raw!r}")
    if "returns" in raw:
        return Outcome.returns(raw["returns"])
    type_name = raw.get("returnsType", raw.get("returns_type"))
    if type_name is not None:
        if not isinstance(type_name, str) or not type_name:
            raise ValueError(f"returnsType must be a non-empty string: {raw!r}")
        return Outcome.returns_type(type_name)
    if "throws" in raw:
        error = raw["throws"]
        if not isinstance(error, str) or not error:
            raise ValueError(f"throws must name an error kind: {raw!r}")
        when = raw.get("when")
        return Outcome.throws(error, when=str(when) if when is not None else None)
    if raw.get("any") is True:
        return Outcome.anything()
    raise ValueError(f"unrecognised outcome: {raw!r}")


# =============================================================================
# Record model
# =============================================================================


class ArtifactRecord(BaseModel):
    """One interaction record, as emitted by a contract or collaboration test."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    interface_name: str = Field(alias="interfaceName", min_length=1)
    method_name: str = Field(alias="methodName", min_length=1)
    parameter_types: list[str] | None = Field(default=None, alias="parameterTypes")
    return_type: str | None = Field(default=None, alias="returnType")
    input_pattern: list[Any] = Field(default_factory=list, alias="inputPattern")
    outcome: dict[str, Any] | None = None
    test: str = ""
    interaction: Literal["stub", "verify"] | None = None

    @field_validator("input_pattern")
    @classmethod
    def _valid_matchers(cls, value: list[Any]) -> list[Any]:
        for raw in value:
            parse_matcher(raw)
        return value

    @field_validator("outcome")
    @classmethod
    def _valid_outcome(cls, value: dict[str, Any] | None) -> dict[str, Any] | None:
        parse_outcome(value)
        return value

    def matchers(self) -> tuple[ArgMatcher, ...]:
        return tuple(parse_matcher(raw) for raw in self.input_pattern)

    def declared_outcome(self) -> Outcome | None:
        return parse_outcome(self.outcome)


@dataclass
class LoadedRecord:
    record: ArtifactRecord
    source: SourceRef


@dataclass
class ArtifactSet:
    """All records read from one provider or consumer location."""

    location: str
    records: list[LoadedRecord] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)


# =============================================================================
# Loading
# =============================================================================


def load_artifact_set(location: str | Path, *, fetcher: ReadOnlyFetcher | None = None) -> ArtifactSet:
    """Read every record at *location* (file, directory or URL).

    Raises :class:`ArtifactError` on unreadable input or the first
    malformed record; a run never proceeds on partially-read artifacts.
    """
    text_location = str(location)
    if is_remote(text_location):
        return _load_remote(text_location, fetcher)

    path = Path(location)
    if not path.exists():
        raise ArtifactError("artifact path does not exist", artifact=text_location)

    result = ArtifactSet(location=text_location)
    if path.is_dir():
        files = sorted(
            p for p in path.rglob("*") if p.is_file() and p.suffix.lower() in ARTIFACT_SUFFIXES
        )
        if not files:
            logger.warning("No artifact files under %s", path)
        for file in files:
            result.records.extend(_parse_text(_read_file(file, str(file)), str(file), file.suffix))
    else:
        result.records.extend(_parse_text(_read_file(path, text_location), text_location, path.suffix))

    logger.info("Loaded %d records from %s", len(result), text_location)
    return result


def _read_file(path: Path, artifact: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ArtifactError(f"not valid UTF-8: {exc.reason} at byte {exc.start}", artifact=artifact) from exc
    except OSError as exc:
        raise ArtifactError(f"cannot read artifact: {exc.strerror or exc}", artifact=artifact) from exc


def _load_remote(url: str, fetcher: ReadOnlyFetcher | None) -> ArtifactSet:
    suffix = Path(url.split("?", 1)[0]).suffix or ".jsonl"
    if fetcher is not None:
        text = fetcher.fetch_text(url)
    else:
        with ReadOnlyFetcher() as owned:
            text = owned.fetch_text(url)
    result = ArtifactSet(location=url, records=_parse_text(text, url, suffix))
    logger.info("Fetched %d records from %s", len(result), url)
    return result


def parse_records(text: str, artifact: str, suffix: str = ".jsonl") -> list[LoadedRecord]:
    """Parse artifact *text*; *suffix* selects line-delimited or document form."""
    return _parse_text(text, artifact, suffix)


def _parse_text(text: str, artifact: str, suffix: str) -> list[LoadedRecord]:
    suffix = suffix.lower()
    if suffix in LINE_SUFFIXES:
        return list(_parse_lines(text, artifact))
    if suffix in (".yaml", ".yml"):
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ArtifactError(f"invalid YAML: {exc}", artifact=artifact) from exc
    elif suffix == ".json":
        try:
            document = json.loads(text) if text.strip() else []
        except json.JSONDecodeError as exc:
            raise ArtifactError(f"invalid JSON: {exc.msg}", artifact=artifact, line=exc.lineno) from exc
    else:
        raise ArtifactError(f"unsupported artifact format '{suffix}'", artifact=artifact)
    return list(_parse_document(document, artifact))


def _parse_lines(text: str, artifact: str):
    for lineno, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError as exc:
            raise ArtifactError(f"invalid JSON: {exc.msg}", artifact=artifact, line=lineno) from exc
        yield _validate(data, artifact, lineno)


def _parse_document(document: Any, artifact: str):
    if document is None:
        return
    if isinstance(document, dict):
        if "records" not in document:
            raise ArtifactError("document must be a list of records or have a 'records' key", artifact=artifact)
        document = document["records"]
    if not isinstance(document, list):
        raise ArtifactError("records must be a list", artifact=artifact)
    for index, data in enumerate(document, start=1):
        yield _validate(data, artifact, index)


def _validate(data: Any, artifact: str, line: int) -> LoadedRecord:
    if not isinstance(data, dict):
        raise ArtifactError("record must be an object", artifact=artifact, line=line)
    try:
        record = ArtifactRecord.model_validate(data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'record'}: {err['msg']}" for err in exc.errors()
        )
        raise ArtifactError(problems, artifact=artifact, line=line) from exc
    return LoadedRecord(record=record, source=SourceRef(artifact=artifact, line=line, test=record.test))
