"""Expectation extraction: consumer collaboration-test records → Expectations.

A direct structural transcription with no inference: each recorded stub or
verify interaction becomes exactly one immutable :class:`Expectation`.
Several expectations may target the same interface and method.
"""

from __future__ import annotations

import logging

from wirecheck.artifacts import ArtifactSet
from wirecheck.errors import ArtifactError
from wirecheck.model import Expectation, Outcome
from wirecheck.registry import Registry

logger = logging.getLogger(__name__)


def extract_expectations(artifacts: ArtifactSet) -> list[Expectation]:
    """Transcribe every record of a consumer artifact set."""
    expectations: list[Expectation] = []
    for loaded in artifacts.records:
        record, source = loaded.record, loaded.source
        pattern = record.matchers()
        if record.parameter_types is not None and len(record.parameter_types) != len(pattern):
            raise ArtifactError(
                f"inputPattern has {len(pattern)} arguments but parameterTypes declares "
                f"{len(record.parameter_types)}",
                artifact=source.artifact,
                line=source.line,
            )
        outcome = record.declared_outcome() or Outcome.anything()
        interaction = record.interaction or ("verify" if record.outcome is None else "stub")
        expectations.append(
            Expectation(
                interface_name=record.interface_name,
                method_name=record.method_name,
                input_pattern=pattern,
                outcome=outcome,
                interaction=interaction,
                parameter_types=tuple(record.parameter_types) if record.parameter_types is not None else None,
                return_type=record.return_type,
                source=source,
            )
        )
    logger.info("Extracted %d expectations from %s", len(expectations), artifacts.location)
    return expectations


class ExpectationExtractor:
    """Extracts consumer artifact sets and appends their expectations."""

    def __init__(self, registry: Registry) -> None:
        self.registry = registry

    def extract(self, artifacts: ArtifactSet) -> list[Expectation]:
        expectations = extract_expectations(artifacts)
        self.registry.add_expectations(expectations)
        return expectations
