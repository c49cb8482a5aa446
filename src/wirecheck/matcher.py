"""Correspondence matching: does every consumer Expectation hold against the provider Contract?

Checks run in a fixed order and the first failing one names the result:

1. the target interface has a contract          → else ``MissingContract``
2. it declares the method at the called arity   → else ``UnknownMethod``
3. some example accepts the consumer's matchers → else ``ArgumentMismatch``
4. that example's outcome agrees                → else ``OutcomeMismatch``
5. otherwise                                    → ``Corresponds``

When several examples accept the arguments, the most specific one (exact >
predicate > type > any, summed per argument) is the reference.  Among
equally specific examples the first, in extraction order, whose outcome
agrees is chosen.  Disagreement among those tied examples is surfaced as a
note on the result.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from wirecheck.compare import compare_values, values_equal
from wirecheck.model import (
    ArgMatcher,
    BehavioralExample,
    Contract,
    CorrespondenceResult,
    Expectation,
    MatcherKind,
    MethodSignature,
    Outcome,
    OutcomeKind,
    ResultKind,
    describe_pattern,
    pattern_key,
    types_compatible,
    value_matches_type,
)
from wirecheck.registry import Registry

logger = logging.getLogger(__name__)

# Declared inputs listed in an ArgumentMismatch explanation.
MAX_LISTED_INPUTS = 5


class CorrespondenceMatcher:
    """Matches every Expectation in a Registry against its interface's Contract."""

    def __init__(
        self,
        registry: Registry,
        *,
        ignore_fields: set[str] | frozenset[str] | None = None,
        workers: int | None = None,
    ) -> None:
        self.registry = registry
        self.ignore_fields = frozenset(ignore_fields or ())
        self.workers = workers

    def match(self) -> list[CorrespondenceResult]:
        """Match all expectations; results are ordered by interface, method, origin."""
        names = [n for n in self.registry.interface_names() if self.registry.expectations(n)]
        if self.workers == 1 or len(names) <= 1:
            groups = [self.match_interface(name) for name in names]
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                groups = list(pool.map(self.match_interface, names))
        results = [result for group in groups for result in group]
        logger.info(
            "Matched %d expectations: %d mismatches",
            len(results),
            sum(1 for r in results if r.is_mismatch),
        )
        return results

    def match_interface(self, interface_name: str) -> list[CorrespondenceResult]:
        contract = self.registry.contract(interface_name)
        return [
            self.match_expectation(expectation, contract)
            for expectation in self.registry.expectations(interface_name)
        ]

    def match_expectation(
        self, expectation: Expectation, contract: Contract | None
    ) -> CorrespondenceResult:
        """Run the ordered checks for one expectation."""
        if contract is None:
            return CorrespondenceResult(
                expectation=expectation,
                kind=ResultKind.MISSING_CONTRACT,
                explanation=f"No provider contract is registered for interface '{expectation.interface_name}'",
            )

        version = contract.version
        methods, method_problem = self._resolve_methods(expectation, contract)
        if method_problem:
            return CorrespondenceResult(
                expectation=expectation,
                kind=ResultKind.UNKNOWN_METHOD,
                explanation=method_problem,
                contract_version=version,
            )

        candidates = [e for e in contract.examples if e.method in methods]
        accepted = [e for e in candidates if self._pattern_compatible(expectation.input_pattern, e.input_pattern)]
        if not accepted:
            declared = [describe_pattern(e.input_pattern) for e in candidates]
            listed = ", ".join(declared[:MAX_LISTED_INPUTS])
            if len(declared) > MAX_LISTED_INPUTS:
                listed += f", ... ({len(declared) - MAX_LISTED_INPUTS} more)"
            return CorrespondenceResult(
                expectation=expectation,
                kind=ResultKind.ARGUMENT_MISMATCH,
                explanation=(
                    f"No declared example of {expectation.method_name} accepts "
                    f"{describe_pattern(expectation.input_pattern)}; declared inputs: {listed or 'none'}"
                ),
                contract_version=version,
            )

        top = max(e.specificity for e in accepted)
        tied = [e for e in accepted if e.specificity == top]
        notes = list(self._signature_notes(expectation, methods))
        notes.extend(self._tie_notes(tied))

        chosen: BehavioralExample | None = None
        for example in tied:
            if not self.outcome_problems(expectation.outcome, example.outcome):
                chosen = example
                break

        if chosen is None:
            reference = tied[0]
            problems = self.outcome_problems(expectation.outcome, reference.outcome)
            return CorrespondenceResult(
                expectation=expectation,
                kind=ResultKind.OUTCOME_MISMATCH,
                explanation=(
                    f"Consumer expects {expectation.outcome.describe()} but contract declares "
                    f"{reference.outcome.describe()}: " + "; ".join(problems)
                ),
                example=reference,
                contract_version=version,
                notes=tuple(notes),
            )

        if _inconsistent(tied):
            # The contract disagrees with itself; reference its first example.
            chosen = tied[0]
        return CorrespondenceResult(
            expectation=expectation,
            kind=ResultKind.CORRESPONDS,
            explanation=f"Matches {chosen.describe()} [{chosen.source.describe()}]",
            example=chosen,
            contract_version=version,
            notes=tuple(notes),
        )

    # ------------------------------------------------------------------
    # Method resolution
    # ------------------------------------------------------------------

    def _resolve_methods(
        self, expectation: Expectation, contract: Contract
    ) -> tuple[list[MethodSignature], str]:
        signature = contract.signature
        overloads = signature.overloads(expectation.method_name)
        if not overloads:
            known = ", ".join(signature.method_names()) or "none"
            return [], (
                f"Contract for '{signature.name}' declares no method '{expectation.method_name}' "
                f"(declared: {known})"
            )

        same_arity = [m for m in overloads if m.arity == expectation.arity]
        if not same_arity:
            arities = ", ".join(str(a) for a in sorted({m.arity for m in overloads}))
            return [], (
                f"'{signature.name}.{expectation.method_name}' is declared with {arities} "
                f"argument(s), consumer calls it with {expectation.arity}"
            )

        if expectation.parameter_types is not None:
            typed = [
                m for m in same_arity
                if all(types_compatible(a, b) for a, b in zip(m.parameter_types, expectation.parameter_types))
            ]
            if typed:
                same_arity = typed
        return same_arity, ""

    def _signature_notes(self, expectation: Expectation, methods: list[MethodSignature]):
        if expectation.return_type is None:
            return
        if not any(types_compatible(m.return_type, expectation.return_type) for m in methods):
            declared = ", ".join(sorted({m.return_type for m in methods}))
            yield (
                f"consumer declares return type {expectation.return_type}, "
                f"contract declares {declared}"
            )

    def _tie_notes(self, tied: list[BehavioralExample]):
        if len({e.outcome.key() for e in tied}) < 2:
            return
        sources = ", ".join(e.source.describe() for e in tied)
        if _inconsistent(tied):
            yield (
                "contract is inconsistent for this input; judged against the first "
                f"example in extraction order (examples: {sources})"
            )
        else:
            yield (
                f"{len(tied)} equally specific examples declare different outcomes "
                f"(examples: {sources})"
            )

    # ------------------------------------------------------------------
    # Argument compatibility
    # ------------------------------------------------------------------

    def _pattern_compatible(
        self, consumer: tuple[ArgMatcher, ...], declared: tuple[ArgMatcher, ...]
    ) -> bool:
        if len(consumer) != len(declared):
            return False
        return all(self.arg_compatible(c, d) for c, d in zip(consumer, declared))

    def arg_compatible(self, consumer: ArgMatcher, declared: ArgMatcher) -> bool:
        """Check whether a consumer's argument matcher overlaps a declared one."""
        if consumer.kind == MatcherKind.ANY or declared.kind == MatcherKind.ANY:
            return True

        if consumer.kind == MatcherKind.EXACT:
            if declared.kind == MatcherKind.EXACT:
                return values_equal(consumer.value, declared.value, ignore_fields=self.ignore_fields)
            if declared.kind == MatcherKind.TYPE:
                return value_matches_type(consumer.value, declared.type_name)
            return predicate_accepts(declared, consumer.value)

        if declared.kind == MatcherKind.EXACT:
            if consumer.kind == MatcherKind.TYPE:
                return value_matches_type(declared.value, consumer.type_name)
            return predicate_accepts(consumer, declared.value)

        # Two wildcards overlap when their types can.
        return types_compatible(consumer.type_name, declared.type_name)

    # ------------------------------------------------------------------
    # Outcome compatibility
    # ------------------------------------------------------------------

    def outcome_problems(self, expected: Outcome, declared: Outcome) -> list[str]:
        """Return why *expected* disagrees with *declared*; empty if they agree."""
        if expected.kind == OutcomeKind.ANY:
            return []

        if expected.kind == OutcomeKind.THROWS:
            if declared.kind != OutcomeKind.THROWS:
                return [f"contract does not throw, it {declared.describe()}"]
            if expected.error != declared.error:
                return [f"error kind differs (expected={expected.error}, declared={declared.error})"]
            return []

        if declared.kind == OutcomeKind.THROWS:
            return [f"contract throws {declared.error} instead of returning"]

        if expected.kind == OutcomeKind.RETURNS:
            if declared.kind == OutcomeKind.RETURNS:
                return compare_values(expected.value, declared.value, ignore_fields=self.ignore_fields)
            if not value_matches_type(expected.value, declared.type_name):
                return [f"value of type {expected.result_type} is not a {declared.type_name}"]
            return []

        # expected returns_type
        if declared.kind == OutcomeKind.RETURNS:
            if not value_matches_type(declared.value, expected.type_name):
                return [f"declared value of type {declared.result_type} is not a {expected.type_name}"]
            return []
        if not types_compatible(expected.type_name, declared.type_name):
            return [f"return type differs (expected={expected.type_name}, declared={declared.type_name})"]
        return []


def predicate_accepts(matcher: ArgMatcher, value: Any) -> bool:
    """Evaluate a declarative predicate matcher against a concrete value.

    ``regex``, ``range`` and ``one_of`` are evaluated; any other predicate
    is opaque and judged by its declared type alone.
    """
    if matcher.type_name and not value_matches_type(value, matcher.type_name):
        return False
    name = matcher.predicate
    if name == "regex":
        return isinstance(value, str) and re.search(matcher.param("pattern", ""), value) is not None
    if name == "range":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        low, high = matcher.param("min"), matcher.param("max")
        return (low is None or value >= low) and (high is None or value <= high)
    if name == "one_of":
        return any(values_equal(value, option) for option in matcher.param("values", []))
    return True


def _inconsistent(tied: list[BehavioralExample]) -> bool:
    """True if tied examples share one input pattern but disagree on the outcome."""
    by_pattern: dict[str, set[str]] = {}
    for example in tied:
        by_pattern.setdefault(pattern_key(example.input_pattern), set()).add(example.outcome.key())
    return any(len(outcomes) > 1 for outcomes in by_pattern.values())
