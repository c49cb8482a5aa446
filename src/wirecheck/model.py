"""Contract model shared by the extractors, the matcher and the reporter.

Everything here is a plain, immutable value.  Provider contract tests and
consumer collaboration tests are both reduced to these types before any
comparison happens:

    InterfaceSignature     interface name + ordered MethodSignatures
    BehavioralExample      "given this input pattern, the method does Y"
    Contract               signature + examples, versioned by content hash
    Expectation            one recorded stub/verify interaction
    CorrespondenceResult   the matcher's verdict for one Expectation
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any


# =============================================================================
# Type descriptors
# =============================================================================

_TYPE_ALIASES = {
    "string": "str",
    "text": "str",
    "integer": "int",
    "long": "int",
    "number": "float",
    "double": "float",
    "decimal": "float",
    "boolean": "bool",
    "char": "str",
    "character": "str",
    "short": "int",
    "byte": "int",
    "biginteger": "int",
    "bigdecimal": "float",
    "array": "list",
    "arraylist": "list",
    "linkedlist": "list",
    "collection": "list",
    "iterable": "list",
    "iterator": "list",
    "stream": "list",
    "sequence": "list",
    "tuple": "list",
    "set": "list",
    "hashset": "list",
    "frozenset": "list",
    "map": "dict",
    "hashmap": "dict",
    "mapping": "dict",
    "none": "null",
    "nonetype": "null",
    "void": "null",
}

_ANY_TYPES = {"any", "object", "?", "*", ""}

BUILTIN_TYPES = {"str", "int", "float", "bool", "list", "dict", "null"}

TYPE_TAG = "__type__"


def normalize_type(descriptor: str | None) -> str:
    """Return the canonical base name of a type descriptor.

    ``"List[Car]"`` → ``"list"``, ``"Optional[str]"`` → ``"str"``,
    ``"Integer"`` → ``"int"``.  User-defined names keep their spelling.
    """
    if descriptor is None:
        return "any"
    text = descriptor.strip()
    for opener, closer in (("Optional[", "]"), ("Optional<", ">")):
        if text.startswith(opener) and text.endswith(closer):
            text = text[len(opener):-1].strip()
    if "|" in text:
        parts = [p.strip() for p in text.split("|") if p.strip().lower() not in ("none", "null")]
        text = parts[0] if len(parts) == 1 else "any"
    base = text.split("[", 1)[0].split("<", 1)[0].strip()
    lowered = base.lower()
    if lowered in _ANY_TYPES:
        return "any"
    if lowered in BUILTIN_TYPES:
        return lowered
    return _TYPE_ALIASES.get(lowered, base)


def is_nullable(descriptor: str | None) -> bool:
    if descriptor is None:
        return True
    text = descriptor.replace(" ", "")
    return (
        text.startswith(("Optional[", "Optional<"))
        or "|None" in text
        or "|null" in text
        or normalize_type(descriptor) in ("any", "null")
    )


def type_of(value: Any) -> str:
    """Return the descriptor of a concrete (JSON-like) value.

    Dicts carrying a ``__type__`` tag report that tag, which is how records
    spell domain objects such as ``{"__type__": "Car", "model": "X"}``.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "str"
    if isinstance(value, (list, tuple)):
        return "list"
    if isinstance(value, dict):
        tag = value.get(TYPE_TAG)
        if isinstance(tag, str) and tag:
            return tag
        return "dict"
    return type(value).__name__


def types_compatible(declared: str | None, actual: str | None) -> bool:
    """Check whether two type descriptors can describe the same value."""
    left = normalize_type(declared)
    right = normalize_type(actual)
    if left == "any" or right == "any" or left == right:
        return True
    if {left, right} == {"int", "float"}:
        return True
    # Untagged dicts stand in for domain objects.
    if "dict" in (left, right):
        other = right if left == "dict" else left
        return other not in BUILTIN_TYPES
    return False


def value_matches_type(value: Any, descriptor: str | None) -> bool:
    if value is None:
        return is_nullable(descriptor)
    return types_compatible(descriptor, type_of(value))


def canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


# =============================================================================
# Signatures
# =============================================================================


@dataclass(frozen=True)
class MethodSignature:
    """One method: name, ordered parameter types and return type."""

    name: str
    parameter_types: tuple[str, ...] = ()
    return_type: str = "any"

    @property
    def arity(self) -> int:
        return len(self.parameter_types)

    def describe(self) -> str:
        params = ", ".join(self.parameter_types)
        return f"{self.name}({params}) -> {self.return_type}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "parameterTypes": list(self.parameter_types),
            "returnType": self.return_type,
        }


@dataclass(frozen=True)
class InterfaceSignature:
    """Interface identity: declared name plus its ordered methods."""

    name: str
    methods: tuple[MethodSignature, ...] = ()

    def method_names(self) -> list[str]:
        seen: list[str] = []
        for method in self.methods:
            if method.name not in seen:
                seen.append(method.name)
        return seen

    def overloads(self, name: str) -> list[MethodSignature]:
        return [m for m in self.methods if m.name == name]

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "methods": [m.to_dict() for m in self.methods]}


# =============================================================================
# Argument matchers and outcomes
# =============================================================================


class MatcherKind(str, Enum):
    EXACT = "exact"
    PREDICATE = "predicate"
    TYPE = "type"
    ANY = "any"


# Specificity weight per matcher kind, summed across an input pattern.
SPECIFICITY = {
    MatcherKind.EXACT: 3,
    MatcherKind.PREDICATE: 2,
    MatcherKind.TYPE: 1,
    MatcherKind.ANY: 0,
}


@dataclass(frozen=True)
class ArgMatcher:
    """One argument of an input pattern.

    ``value`` holds the exact value for ``exact`` matchers; ``type_name``
    the declared type for ``type`` and (optionally) ``predicate`` matchers;
    ``predicate`` names a declarative predicate and ``params`` its arguments
    as a tuple of ``(key, value)`` pairs.
    """

    kind: MatcherKind
    value: Any = None
    type_name: str | None = None
    predicate: str | None = None
    params: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def exact(cls, value: Any) -> "ArgMatcher":
        return cls(kind=MatcherKind.EXACT, value=value)

    @classmethod
    def of_type(cls, type_name: str) -> "ArgMatcher":
        return cls(kind=MatcherKind.TYPE, type_name=type_name)

    @classmethod
    def anything(cls) -> "ArgMatcher":
        return cls(kind=MatcherKind.ANY)

    @classmethod
    def satisfying(cls, predicate: str, type_name: str | None = None, **params: Any) -> "ArgMatcher":
        return cls(
            kind=MatcherKind.PREDICATE,
            type_name=type_name,
            predicate=predicate,
            params=tuple(sorted(params.items())),
        )

    @property
    def specificity(self) -> int:
        return SPECIFICITY[self.kind]

    @property
    def effective_type(self) -> str:
        if self.kind == MatcherKind.EXACT:
            return type_of(self.value)
        return normalize_type(self.type_name)

    def param(self, key: str, default: Any = None) -> Any:
        for k, v in self.params:
            if k == key:
                return v
        return default

    def key(self) -> str:
        """Canonical identity, used to detect examples with equal inputs."""
        return canonical_json(self.to_dict())

    def describe(self) -> str:
        if self.kind == MatcherKind.EXACT:
            return canonical_json(self.value)
        if self.kind == MatcherKind.TYPE:
            return f"<{self.type_name}>"
        if self.kind == MatcherKind.ANY:
            return "<any>"
        params = ", ".join(f"{k}={canonical_json(v)}" for k, v in self.params)
        suffix = f": {self.type_name}" if self.type_name else ""
        return f"<{self.predicate}({params}){suffix}>"

    def to_dict(self) -> dict[str, Any]:
        if self.kind == MatcherKind.EXACT:
            return {"exact": self.value}
        if self.kind == MatcherKind.TYPE:
            return {"type": self.type_name}
        if self.kind == MatcherKind.ANY:
            return {"any": True}
        data: dict[str, Any] = {"predicate": self.predicate}
        if self.type_name:
            data["type"] = self.type_name
        data.update(dict(self.params))
        return data


def describe_pattern(pattern: tuple[ArgMatcher, ...]) -> str:
    return "(" + ", ".join(m.describe() for m in pattern) + ")"


def pattern_key(pattern: tuple[ArgMatcher, ...]) -> str:
    return canonical_json([m.to_dict() for m in pattern])


class OutcomeKind(str, Enum):
    RETURNS = "returns"
    RETURNS_TYPE = "returns_type"
    THROWS = "throws"
    ANY = "any"


@dataclass(frozen=True)
class Outcome:
    """What a method call produces: a value, a typed value, an error, or anything."""

    kind: OutcomeKind
    value: Any = None
    type_name: str | None = None
    error: str | None = None
    when: str | None = None

    @classmethod
    def returns(cls, value: Any) -> "Outcome":
        return cls(kind=OutcomeKind.RETURNS, value=value)

    @classmethod
    def returns_type(cls, type_name: str) -> "Outcome":
        return cls(kind=OutcomeKind.RETURNS_TYPE, type_name=type_name)

    @classmethod
    def throws(cls, error: str, when: str | None = None) -> "Outcome":
        return cls(kind=OutcomeKind.THROWS, error=error, when=when)

    @classmethod
    def anything(cls) -> "Outcome":
        return cls(kind=OutcomeKind.ANY)

    @property
    def is_error(self) -> bool:
        return self.kind == OutcomeKind.THROWS

    @property
    def result_type(self) -> str:
        if self.kind == OutcomeKind.RETURNS:
            return type_of(self.value)
        if self.kind == OutcomeKind.RETURNS_TYPE:
            return normalize_type(self.type_name)
        return "any"

    def key(self) -> str:
        return canonical_json(self.to_dict())

    def describe(self) -> str:
        if self.kind == OutcomeKind.RETURNS:
            return f"returns {canonical_json(self.value)}"
        if self.kind == OutcomeKind.RETURNS_TYPE:
            return f"returns <{self.type_name}>"
        if self.kind == OutcomeKind.THROWS:
            condition = f" when {self.when}" if self.when else ""
            return f"throws {self.error}{condition}"
        return "any outcome"

    def to_dict(self) -> dict[str, Any]:
        if self.kind == OutcomeKind.RETURNS:
            return {"returns": self.value}
        if self.kind == OutcomeKind.RETURNS_TYPE:
            return {"returnsType": self.type_name}
        if self.kind == OutcomeKind.THROWS:
            data: dict[str, Any] = {"throws": self.error}
            if self.when:
                data["when"] = self.when
            return data
        return {"any": True}


# =============================================================================
# Examples, contracts, expectations
# =============================================================================


@dataclass(frozen=True)
class SourceRef:
    """Where a record came from: artifact, line, and the test that emitted it."""

    artifact: str = ""
    line: int = 0
    test: str = ""

    def describe(self) -> str:
        location = f"{self.artifact}:{self.line}" if self.artifact else ""
        if self.test and location:
            return f"{self.test} ({location})"
        return self.test or location or "<unknown>"

    def to_dict(self) -> dict[str, Any]:
        return {"artifact": self.artifact, "line": self.line, "test": self.test}


@dataclass(frozen=True)
class BehavioralExample:
    """A declared input/outcome pair for one method signature."""

    method: MethodSignature
    input_pattern: tuple[ArgMatcher, ...]
    outcome: Outcome
    source: SourceRef = field(default_factory=SourceRef)
    ordinal: int = 0  # position in extraction order within its contract

    @property
    def specificity(self) -> int:
        return sum(m.specificity for m in self.input_pattern)

    def describe(self) -> str:
        return f"{self.method.name}{describe_pattern(self.input_pattern)} {self.outcome.describe()}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "method": self.method.to_dict(),
            "inputPattern": [m.to_dict() for m in self.input_pattern],
            "outcome": self.outcome.to_dict(),
        }


@dataclass(frozen=True)
class Contract:
    """A provider interface's declared signature and behavior."""

    signature: InterfaceSignature
    examples: tuple[BehavioralExample, ...] = ()
    source: str = ""

    @property
    def interface_name(self) -> str:
        return self.signature.name

    @cached_property
    def version(self) -> str:
        # Computed once; the instance is immutable.
        payload = canonical_json({
            "signature": self.signature.to_dict(),
            "examples": [e.to_dict() for e in self.examples],
        })
        return f"sha256:{hashlib.sha256(payload.encode()).hexdigest()}"

    @property
    def short_version(self) -> str:
        return self.version[len("sha256:"):][:12]

    def examples_for(self, method: MethodSignature) -> list[BehavioralExample]:
        return [e for e in self.examples if e.method == method]

    def to_dict(self) -> dict[str, Any]:
        return {
            "interface": self.interface_name,
            "version": self.version,
            "source": self.source,
            "signature": self.signature.to_dict(),
            "examples": [e.to_dict() for e in self.examples],
        }


@dataclass(frozen=True)
class Expectation:
    """One consumer stub/verify interaction, transcribed as recorded."""

    interface_name: str
    method_name: str
    input_pattern: tuple[ArgMatcher, ...]
    outcome: Outcome
    interaction: str = "stub"  # stub | verify
    parameter_types: tuple[str, ...] | None = None
    return_type: str | None = None
    source: SourceRef = field(default_factory=SourceRef)

    @property
    def arity(self) -> int:
        return len(self.input_pattern)

    def sort_key(self) -> tuple[str, str, str, int]:
        return (self.interface_name, self.method_name, self.source.artifact, self.source.line)

    def describe(self) -> str:
        return (
            f"{self.interface_name}.{self.method_name}{describe_pattern(self.input_pattern)} "
            f"{self.outcome.describe()}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "interface": self.interface_name,
            "method": self.method_name,
            "interaction": self.interaction,
            "inputPattern": [m.to_dict() for m in self.input_pattern],
            "outcome": self.outcome.to_dict(),
            "source": self.source.to_dict(),
        }


# =============================================================================
# Results
# =============================================================================


class ResultKind(str, Enum):
    CORRESPONDS = "Corresponds"
    MISSING_CONTRACT = "MissingContract"
    UNKNOWN_METHOD = "UnknownMethod"
    ARGUMENT_MISMATCH = "ArgumentMismatch"
    OUTCOME_MISMATCH = "OutcomeMismatch"

    @property
    def is_mismatch(self) -> bool:
        return self is not ResultKind.CORRESPONDS


@dataclass(frozen=True)
class CorrespondenceResult:
    """The matcher's verdict for one Expectation."""

    expectation: Expectation
    kind: ResultKind
    explanation: str = ""
    example: BehavioralExample | None = None
    contract_version: str | None = None
    notes: tuple[str, ...] = ()

    @property
    def interface_name(self) -> str:
        return self.expectation.interface_name

    @property
    def method_name(self) -> str:
        return self.expectation.method_name

    @property
    def is_mismatch(self) -> bool:
        return self.kind.is_mismatch

    def to_dict(self) -> dict[str, Any]:
        return {
            "interface": self.interface_name,
            "method": self.method_name,
            "kind": self.kind.value,
            "explanation": self.explanation,
            "expectation": self.expectation.to_dict(),
            "example": self.example.to_dict() if self.example else None,
            "exampleSource": self.example.source.to_dict() if self.example else None,
            "contractVersion": self.contract_version,
            "notes": list(self.notes),
        }


@dataclass(frozen=True)
class ContractInconsistency:
    """Two or more provider examples disagree for the same input."""

    interface_name: str
    method: MethodSignature
    input_pattern: tuple[ArgMatcher, ...]
    examples: tuple[BehavioralExample, ...]
    reason: str = "conflicting outcomes"

    def describe(self) -> str:
        outcomes = "; ".join(
            f"{e.outcome.describe()} [{e.source.describe()}]" for e in self.examples
        )
        return (
            f"{self.interface_name}.{self.method.name}{describe_pattern(self.input_pattern)}: "
            f"{self.reason}: {outcomes}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "interface": self.interface_name,
            "method": self.method.to_dict(),
            "inputPattern": [m.to_dict() for m in self.input_pattern],
            "reason": self.reason,
            "examples": [
                {**e.to_dict(), "source": e.source.to_dict()} for e in self.examples
            ],
        }
