"""Contract extraction: provider contract-test records → one Contract per interface.

Examples are grouped by interface and method signature.  Within a group,
examples with the same input pattern must declare the same outcome; a
disagreement is collected as a :class:`ContractInconsistency` naming every
conflicting example rather than silently picking one.  Identical examples
recorded by several tests are merged.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field, replace

from wirecheck.artifacts import ArtifactSet, LoadedRecord
from wirecheck.errors import ArtifactError
from wirecheck.model import (
    BehavioralExample,
    Contract,
    ContractInconsistency,
    InterfaceSignature,
    MethodSignature,
    OutcomeKind,
    pattern_key,
    value_matches_type,
    types_compatible,
)
from wirecheck.registry import Registry

logger = logging.getLogger(__name__)


@dataclass
class ContractExtraction:
    """Result of extracting one provider artifact set."""

    location: str
    contracts: list[Contract] = field(default_factory=list)
    inconsistencies: list[ContractInconsistency] = field(default_factory=list)


@dataclass
class _InterfaceBuilder:
    name: str
    methods: "OrderedDict[tuple[str, tuple[str, ...]], MethodSignature]" = field(default_factory=OrderedDict)
    # (method key, pattern key) -> examples in extraction order
    groups: "OrderedDict[tuple[tuple[str, tuple[str, ...]], str], list[BehavioralExample]]" = field(
        default_factory=OrderedDict
    )
    examples: list[BehavioralExample] = field(default_factory=list)
    inconsistencies: list[ContractInconsistency] = field(default_factory=list)


def extract_contracts(artifacts: ArtifactSet) -> ContractExtraction:
    """Build contracts from one provider artifact set.

    Raises :class:`ArtifactError` for records that cannot describe a
    provider example at all; behavioral conflicts are returned in
    ``inconsistencies`` instead.
    """
    builders: OrderedDict[str, _InterfaceBuilder] = OrderedDict()
    for loaded in artifacts.records:
        builder = builders.setdefault(
            loaded.record.interface_name, _InterfaceBuilder(name=loaded.record.interface_name)
        )
        _add_example(builder, loaded)

    extraction = ContractExtraction(location=artifacts.location)
    for builder in builders.values():
        extraction.inconsistencies.extend(builder.inconsistencies)
        extraction.inconsistencies.extend(_conflicts(builder))
        contract = Contract(
            signature=InterfaceSignature(name=builder.name, methods=tuple(builder.methods.values())),
            examples=tuple(builder.examples),
            source=artifacts.location,
        )
        extraction.contracts.append(contract)
        logger.info(
            "Contract %s: %d methods, %d examples (%s)",
            contract.interface_name,
            len(contract.signature.methods),
            len(contract.examples),
            contract.short_version,
        )
    for inconsistency in extraction.inconsistencies:
        logger.error("Contract inconsistency: %s", inconsistency.describe())
    return extraction


def _add_example(builder: _InterfaceBuilder, loaded: LoadedRecord) -> None:
    record, source = loaded.record, loaded.source
    if record.parameter_types is None:
        raise ArtifactError(
            "provider records must declare parameterTypes", artifact=source.artifact, line=source.line
        )
    pattern = record.matchers()
    if len(pattern) != len(record.parameter_types):
        raise ArtifactError(
            f"inputPattern has {len(pattern)} arguments but parameterTypes declares "
            f"{len(record.parameter_types)}",
            artifact=source.artifact,
            line=source.line,
        )
    outcome = record.declared_outcome()
    if outcome is None or outcome.kind == OutcomeKind.ANY:
        raise ArtifactError(
            "provider records must declare returns, returnsType or throws",
            artifact=source.artifact,
            line=source.line,
        )

    method_key = (record.method_name, tuple(record.parameter_types))
    signature = builder.methods.get(method_key)
    candidate = MethodSignature(
        name=record.method_name,
        parameter_types=tuple(record.parameter_types),
        return_type=record.return_type or "any",
    )
    if signature is None:
        signature = builder.methods[method_key] = candidate
    elif record.return_type and signature.return_type == "any":
        signature = _declare_return_type(builder, method_key, record.return_type)
    elif record.return_type and not types_compatible(signature.return_type, record.return_type):
        first = next((e for e in builder.examples if e.method == signature), None)
        conflicting = BehavioralExample(method=candidate, input_pattern=pattern, outcome=outcome, source=source)
        builder.inconsistencies.append(
            ContractInconsistency(
                interface_name=builder.name,
                method=signature,
                input_pattern=pattern,
                examples=tuple(e for e in (first, conflicting) if e is not None),
                reason=f"conflicting return types ({signature.return_type} vs {record.return_type})",
            )
        )

    example = BehavioralExample(
        method=signature,
        input_pattern=pattern,
        outcome=outcome,
        source=source,
        ordinal=len(builder.examples),
    )

    if not _outcome_fits_signature(example):
        builder.inconsistencies.append(
            ContractInconsistency(
                interface_name=builder.name,
                method=signature,
                input_pattern=pattern,
                examples=(example,),
                reason=f"declared outcome does not fit return type {signature.return_type}",
            )
        )

    group = builder.groups.setdefault((method_key, pattern_key(pattern)), [])
    if any(existing.outcome.key() == outcome.key() for existing in group):
        logger.debug("Merged duplicate example %s from %s", example.describe(), source.describe())
        return
    group.append(example)
    builder.examples.append(example)


def _declare_return_type(
    builder: _InterfaceBuilder, method_key: tuple[str, tuple[str, ...]], return_type: str
) -> MethodSignature:
    """Fill in a return type earlier records of the method left undeclared."""
    old = builder.methods[method_key]
    new = builder.methods[method_key] = replace(old, return_type=return_type)

    def rebind(example: BehavioralExample) -> BehavioralExample:
        return replace(example, method=new) if example.method == old else example

    builder.examples = [rebind(e) for e in builder.examples]
    for key, examples in builder.groups.items():
        builder.groups[key] = [rebind(e) for e in examples]
    for example in builder.examples:
        if example.method == new and not _outcome_fits_signature(example):
            builder.inconsistencies.append(
                ContractInconsistency(
                    interface_name=builder.name,
                    method=new,
                    input_pattern=example.input_pattern,
                    examples=(example,),
                    reason=f"declared outcome does not fit return type {return_type}",
                )
            )
    logger.debug("Return type of %s taken from a later record: %s", new.describe(), return_type)
    return new


def _outcome_fits_signature(example: BehavioralExample) -> bool:
    outcome = example.outcome
    if outcome.kind == OutcomeKind.RETURNS:
        return outcome.value is None or value_matches_type(outcome.value, example.method.return_type)
    if outcome.kind == OutcomeKind.RETURNS_TYPE:
        return types_compatible(example.method.return_type, outcome.type_name)
    return True


def _conflicts(builder: _InterfaceBuilder) -> list[ContractInconsistency]:
    found: list[ContractInconsistency] = []
    for examples in builder.groups.values():
        if len(examples) < 2:
            continue
        found.append(
            ContractInconsistency(
                interface_name=builder.name,
                method=examples[0].method,
                input_pattern=examples[0].input_pattern,
                examples=tuple(examples),
            )
        )
    return found


class ContractExtractor:
    """Extracts provider artifact sets and registers their contracts."""

    def __init__(self, registry: Registry) -> None:
        self.registry = registry

    def extract(self, artifacts: ArtifactSet) -> ContractExtraction:
        extraction = extract_contracts(artifacts)
        self.register(extraction)
        return extraction

    def register(self, extraction: ContractExtraction) -> None:
        for contract in extraction.contracts:
            self.registry.register_contract(contract)
        self.registry.add_inconsistencies(extraction.inconsistencies)
