"""Unit tests for correspondence matching."""

import pytest
from wirecheck.matcher import CorrespondenceMatcher, predicate_accepts
from wirecheck.model import (
    ArgMatcher,
    BehavioralExample,
    Contract,
    Expectation,
    InterfaceSignature,
    MethodSignature,
    Outcome,
    ResultKind,
    SourceRef,
)
from wirecheck.registry import Registry

CAR_X = {"__type__": "Car", "model": "X"}

FIND_ALL = MethodSignature("findAll", ("str",), "list[Car]")
FIND_ALL_NO_ARGS = MethodSignature("findAll", (), "list[Car]")
SAVE = MethodSignature("save", ("Car",), "None")


def example(method, args, outcome, line=1):
    return BehavioralExample(
        method=method,
        input_pattern=tuple(args),
        outcome=outcome,
        source=SourceRef(artifact="provider.jsonl", line=line, test=f"contract_test_{line}"),
        ordinal=line - 1,
    )


def car_service(*examples):
    methods = []
    for e in examples:
        if e.method not in methods:
            methods.append(e.method)
    return Contract(InterfaceSignature("CarService", tuple(methods)), tuple(examples), source="provider.jsonl")


def expect(method, args, outcome=None, interface="CarService", line=1, **kwargs):
    return Expectation(
        interface_name=interface,
        method_name=method,
        input_pattern=tuple(args),
        outcome=outcome or Outcome.anything(),
        source=SourceRef(artifact="consumer.jsonl", line=line, test=f"collab_test_{line}"),
        **kwargs,
    )


@pytest.fixture
def contract():
    return car_service(
        example(FIND_ALL, [ArgMatcher.exact("H1")], Outcome.returns([CAR_X]), line=1),
        example(FIND_ALL, [ArgMatcher.exact("missing")], Outcome.throws("UnknownHeader"), line=2),
        example(SAVE, [ArgMatcher.of_type("Car")], Outcome.returns(None), line=3),
    )


@pytest.fixture
def matcher():
    return CorrespondenceMatcher(Registry())


class TestCarServiceScenarios:
    def test_exact_input_and_outcome_corresponds(self, matcher, contract):
        result = matcher.match_expectation(
            expect("findAll", [ArgMatcher.exact("H1")], Outcome.returns([CAR_X])), contract
        )
        assert result.kind == ResultKind.CORRESPONDS
        assert result.example.source.line == 1
        assert result.contract_version == contract.version

    def test_unknown_header_is_argument_mismatch(self, matcher, contract):
        result = matcher.match_expectation(expect("findAll", [ArgMatcher.exact("H2")]), contract)
        assert result.kind == ResultKind.ARGUMENT_MISMATCH
        assert '"H1"' in result.explanation

    def test_missing_contract(self, matcher):
        result = matcher.match_expectation(
            expect("info", [ArgMatcher.exact("hi")], interface="Logger"), None
        )
        assert result.kind == ResultKind.MISSING_CONTRACT
        assert "Logger" in result.explanation

    def test_expected_error_against_collection_is_outcome_mismatch(self, matcher, contract):
        result = matcher.match_expectation(
            expect("findAll", [ArgMatcher.exact("H1")], Outcome.throws("ServiceDown")), contract
        )
        assert result.kind == ResultKind.OUTCOME_MISMATCH
        assert result.example.source.line == 1


class TestCheckOrder:
    def test_unknown_method_regardless_of_arguments(self, matcher, contract):
        for args in ([], [ArgMatcher.exact("H1")], [ArgMatcher.anything(), ArgMatcher.exact(3)]):
            result = matcher.match_expectation(expect("deleteAll", args), contract)
            assert result.kind == ResultKind.UNKNOWN_METHOD
            assert "findAll" in result.explanation

    def test_wrong_arity_is_unknown_method(self, matcher, contract):
        result = matcher.match_expectation(
            expect("findAll", [ArgMatcher.exact("H1"), ArgMatcher.exact(10)]), contract
        )
        assert result.kind == ResultKind.UNKNOWN_METHOD
        assert "with 2" in result.explanation

    def test_missing_contract_beats_unknown_method(self, matcher):
        result = matcher.match_expectation(expect("nope", [], interface="Logger"), None)
        assert result.kind == ResultKind.MISSING_CONTRACT

    def test_overload_chosen_by_arity(self, matcher):
        contract = car_service(
            example(FIND_ALL_NO_ARGS, [], Outcome.returns([]), line=1),
            example(FIND_ALL, [ArgMatcher.of_type("str")], Outcome.returns([CAR_X]), line=2),
        )
        result = matcher.match_expectation(expect("findAll", [], Outcome.returns([])), contract)
        assert result.kind == ResultKind.CORRESPONDS
        assert result.example.source.line == 1


class TestArgumentCompatibility:
    def test_exact_against_type_wildcard(self, matcher, contract):
        car = {"__type__": "Car", "model": "Y"}
        result = matcher.match_expectation(expect("save", [ArgMatcher.exact(car)]), contract)
        assert result.kind == ResultKind.CORRESPONDS

    def test_exact_of_wrong_type(self, matcher, contract):
        result = matcher.match_expectation(expect("save", [ArgMatcher.exact("a string")]), contract)
        assert result.kind == ResultKind.ARGUMENT_MISMATCH

    def test_type_matcher_against_exact_examples(self, matcher, contract):
        result = matcher.match_expectation(expect("findAll", [ArgMatcher.of_type("str")]), contract)
        assert result.kind == ResultKind.CORRESPONDS

    def test_type_matcher_of_wrong_type(self, matcher, contract):
        result = matcher.match_expectation(expect("findAll", [ArgMatcher.of_type("int")]), contract)
        assert result.kind == ResultKind.ARGUMENT_MISMATCH

    def test_regex_predicate_evaluated_against_examples(self, matcher, contract):
        accepted = matcher.match_expectation(
            expect("findAll", [ArgMatcher.satisfying("regex", "str", pattern="^H")]), contract
        )
        rejected = matcher.match_expectation(
            expect("findAll", [ArgMatcher.satisfying("regex", "str", pattern="^Z")]), contract
        )
        assert accepted.kind == ResultKind.CORRESPONDS
        assert accepted.example.source.line == 1
        assert rejected.kind == ResultKind.ARGUMENT_MISMATCH

    def test_any_matcher_accepts_everything(self, matcher, contract):
        result = matcher.match_expectation(expect("save", [ArgMatcher.anything()]), contract)
        assert result.kind == ResultKind.CORRESPONDS


class TestPredicates:
    def test_range(self):
        matcher = ArgMatcher.satisfying("range", "int", min=1, max=5)
        assert predicate_accepts(matcher, 3)
        assert not predicate_accepts(matcher, 9)
        assert not predicate_accepts(matcher, "3")

    def test_one_of(self):
        matcher = ArgMatcher.satisfying("one_of", values=["H1", "H2"])
        assert predicate_accepts(matcher, "H2")
        assert not predicate_accepts(matcher, "H3")

    def test_opaque_predicate_judged_by_type(self):
        matcher = ArgMatcher.satisfying("isValidHeader", "str")
        assert predicate_accepts(matcher, "anything")
        assert not predicate_accepts(matcher, 42)


class TestOutcomeCompatibility:
    def test_structural_difference_is_explained(self, matcher, contract):
        result = matcher.match_expectation(
            expect("findAll", [ArgMatcher.exact("H1")], Outcome.returns([{"__type__": "Car", "model": "Z"}])),
            contract,
        )
        assert result.kind == ResultKind.OUTCOME_MISMATCH
        assert "$[0].model" in result.explanation

    def test_type_tag_may_be_omitted_by_consumer(self, matcher, contract):
        result = matcher.match_expectation(
            expect("findAll", [ArgMatcher.exact("H1")], Outcome.returns([{"model": "X"}])), contract
        )
        assert result.kind == ResultKind.CORRESPONDS

    def test_returns_type_expectation(self, matcher, contract):
        ok = matcher.match_expectation(
            expect("findAll", [ArgMatcher.exact("H1")], Outcome.returns_type("List<Car>")), contract
        )
        bad = matcher.match_expectation(
            expect("findAll", [ArgMatcher.exact("H1")], Outcome.returns_type("int")), contract
        )
        assert ok.kind == ResultKind.CORRESPONDS
        assert bad.kind == ResultKind.OUTCOME_MISMATCH

    def test_same_error_kind(self, matcher, contract):
        result = matcher.match_expectation(
            expect("findAll", [ArgMatcher.exact("missing")], Outcome.throws("UnknownHeader")), contract
        )
        assert result.kind == ResultKind.CORRESPONDS

    def test_different_error_kind(self, matcher, contract):
        result = matcher.match_expectation(
            expect("findAll", [ArgMatcher.exact("missing")], Outcome.throws("NotFound")), contract
        )
        assert result.kind == ResultKind.OUTCOME_MISMATCH
        assert "error kind differs" in result.explanation

    def test_consumer_expects_return_but_contract_throws(self, matcher, contract):
        result = matcher.match_expectation(
            expect("findAll", [ArgMatcher.exact("missing")], Outcome.returns([])), contract
        )
        assert result.kind == ResultKind.OUTCOME_MISMATCH

    def test_verify_only_expectation(self, matcher, contract):
        result = matcher.match_expectation(
            expect("save", [ArgMatcher.of_type("Car")], interaction="verify"), contract
        )
        assert result.kind == ResultKind.CORRESPONDS

    def test_ignored_fields(self, contract):
        matcher = CorrespondenceMatcher(Registry(), ignore_fields={"model"})
        result = matcher.match_expectation(
            expect("findAll", [ArgMatcher.exact("H1")], Outcome.returns([{"__type__": "Car", "model": "Q"}])),
            contract,
        )
        assert result.kind == ResultKind.CORRESPONDS


class TestTieBreaking:
    def test_most_specific_example_wins(self, matcher):
        contract = car_service(
            example(FIND_ALL, [ArgMatcher.of_type("str")], Outcome.returns([]), line=1),
            example(FIND_ALL, [ArgMatcher.exact("H1")], Outcome.returns([CAR_X]), line=2),
        )
        specific = matcher.match_expectation(
            expect("findAll", [ArgMatcher.exact("H1")], Outcome.returns([CAR_X])), contract
        )
        general = matcher.match_expectation(
            expect("findAll", [ArgMatcher.exact("H1")], Outcome.returns([])), contract
        )
        assert specific.kind == ResultKind.CORRESPONDS
        assert specific.example.source.line == 2
        assert general.kind == ResultKind.OUTCOME_MISMATCH
        assert general.example.source.line == 2

    def test_broad_matcher_against_differing_examples(self, matcher):
        contract = car_service(
            example(FIND_ALL, [ArgMatcher.exact("H1")], Outcome.returns([CAR_X]), line=1),
            example(FIND_ALL, [ArgMatcher.exact("H2")], Outcome.returns([]), line=2),
        )
        result = matcher.match_expectation(
            expect("findAll", [ArgMatcher.of_type("str")], Outcome.returns([])), contract
        )
        assert result.kind == ResultKind.CORRESPONDS
        assert result.example.source.line == 2
        assert any("equally specific" in n for n in result.notes)

    def test_inconsistent_examples_reference_first(self, matcher):
        contract = car_service(
            example(FIND_ALL, [ArgMatcher.exact("H1")], Outcome.returns([CAR_X]), line=1),
            example(FIND_ALL, [ArgMatcher.exact("H1")], Outcome.returns([]), line=2),
        )
        result = matcher.match_expectation(
            expect("findAll", [ArgMatcher.exact("H1")], Outcome.returns([])), contract
        )
        assert result.kind == ResultKind.CORRESPONDS
        assert result.example.source.line == 1
        assert any("inconsistent" in n for n in result.notes)


class TestMatchRegistry:
    def build(self, contract):
        registry = Registry()
        registry.register_contract(contract)
        registry.add_expectations([
            expect("findAll", [ArgMatcher.exact("H2")], line=3),
            expect("info", [ArgMatcher.of_type("str")], interface="Logger", line=1),
            expect("findAll", [ArgMatcher.exact("H1")], Outcome.returns([CAR_X]), line=2),
            expect("save", [ArgMatcher.of_type("Car")], line=4),
        ])
        return registry

    def test_results_cover_every_expectation_in_order(self, contract):
        results = CorrespondenceMatcher(self.build(contract), workers=4).match()
        assert [(r.interface_name, r.method_name, r.expectation.source.line) for r in results] == [
            ("CarService", "findAll", 2),
            ("CarService", "findAll", 3),
            ("CarService", "save", 4),
            ("Logger", "info", 1),
        ]
        assert [r.kind for r in results] == [
            ResultKind.CORRESPONDS,
            ResultKind.ARGUMENT_MISMATCH,
            ResultKind.CORRESPONDS,
            ResultKind.MISSING_CONTRACT,
        ]

    def test_matching_is_idempotent(self, contract):
        matcher = CorrespondenceMatcher(self.build(contract))
        assert matcher.match() == matcher.match()

    def test_no_expectations_no_results(self, contract):
        registry = Registry()
        registry.register_contract(contract)
        assert CorrespondenceMatcher(registry).match() == []
