"""Unit tests for report rendering and verdicts."""

import json

from wirecheck.model import (
    ArgMatcher,
    BehavioralExample,
    Contract,
    ContractInconsistency,
    CorrespondenceResult,
    Expectation,
    InterfaceSignature,
    MethodSignature,
    Outcome,
    ResultKind,
    SourceRef,
)
from wirecheck.reporter import Report, Verdict, render, render_json, render_text

FIND_ALL = MethodSignature("findAll", ("str",), "list[Car]")
CONTRACT = Contract(InterfaceSignature("CarService", (FIND_ALL,)), (), source="provider.jsonl")


def result(kind, interface="CarService", method="findAll", line=1, explanation="because"):
    expectation = Expectation(
        interface_name=interface,
        method_name=method,
        input_pattern=(ArgMatcher.exact("H1"),),
        outcome=Outcome.anything(),
        source=SourceRef(artifact="consumer.jsonl", line=line, test=f"tests/test_app.py::test_{line}"),
    )
    return CorrespondenceResult(
        expectation=expectation,
        kind=kind,
        explanation=explanation,
        contract_version=CONTRACT.version if interface == "CarService" else None,
    )


def inconsistency():
    examples = tuple(
        BehavioralExample(FIND_ALL, (ArgMatcher.exact("H1"),), Outcome.returns(value),
                          source=SourceRef("provider.jsonl", i))
        for i, value in enumerate(([], [1]), start=1)
    )
    return ContractInconsistency("CarService", FIND_ALL, examples[0].input_pattern, examples)


class TestVerdict:
    def test_pass(self):
        report = Report(results=[result(ResultKind.CORRESPONDS)], expectation_count=1)
        assert report.verdict == Verdict.PASS

    def test_fail(self):
        report = Report(
            results=[result(ResultKind.CORRESPONDS), result(ResultKind.ARGUMENT_MISMATCH, line=2)],
            expectation_count=2,
        )
        assert report.verdict == Verdict.FAIL
        assert len(report.mismatches) == 1

    def test_empty_is_not_pass(self):
        assert Report().verdict == Verdict.EMPTY

    def test_fatal_inconsistency(self):
        report = Report(inconsistencies=[inconsistency()], expectation_count=3, aborted=True)
        assert report.verdict == Verdict.INCONSISTENT

    def test_advisory_inconsistency_does_not_fail(self):
        report = Report(
            results=[result(ResultKind.CORRESPONDS)],
            inconsistencies=[inconsistency()],
            expectation_count=1,
            inconsistency_fatal=False,
        )
        assert report.verdict == Verdict.PASS


def test_counts_list_every_kind():
    report = Report(
        results=[result(ResultKind.MISSING_CONTRACT, interface="Logger"), result(ResultKind.CORRESPONDS)],
        expectation_count=2,
    )
    counts = report.counts()
    assert counts["MissingContract"] == 1
    assert counts["Corresponds"] == 1
    assert counts["OutcomeMismatch"] == 0
    assert len(counts) == len(ResultKind)


class TestRenderText:
    def test_groups_by_interface_then_method(self):
        report = Report(
            results=[
                result(ResultKind.CORRESPONDS, line=1),
                result(ResultKind.UNKNOWN_METHOD, method="save", line=2, explanation="no method 'save'"),
                result(ResultKind.MISSING_CONTRACT, interface="Logger", method="info", line=3),
            ],
            contracts=[CONTRACT],
            expectation_count=3,
        )
        text = render_text(report)
        assert text.index("CarService  (contract") < text.index("  save") < text.index("Logger  (no contract)")
        assert CONTRACT.short_version in text
        assert "tests/test_app.py::test_2 (consumer.jsonl:2)" in text
        assert "no method 'save'" in text
        assert text.rstrip().endswith("FAIL: consumer expectations disagree with provider contracts")

    def test_mismatches_only(self):
        report = Report(
            results=[result(ResultKind.CORRESPONDS, line=1), result(ResultKind.OUTCOME_MISMATCH, line=2)],
            contracts=[CONTRACT],
            expectation_count=2,
        )
        text = render_text(report, show_corresponds=False)
        assert "OutcomeMismatch   tests/test_app.py::test_2" in text
        assert "test_1 (" not in text

    def test_empty_run_says_nothing_to_check(self):
        assert "NOTHING TO CHECK" in render_text(Report())

    def test_inconsistencies_come_first(self):
        report = Report(
            results=[result(ResultKind.CORRESPONDS)],
            inconsistencies=[inconsistency()],
            contracts=[CONTRACT],
            expectation_count=1,
            inconsistency_fatal=False,
        )
        text = render_text(report)
        assert text.index("CONTRACT INCONSISTENCIES (1, advisory)") < text.index("CarService  (contract")


def test_render_json():
    report = Report(
        results=[result(ResultKind.ARGUMENT_MISMATCH)],
        contracts=[CONTRACT],
        expectation_count=1,
    )
    data = json.loads(render_json(report))
    assert data["verdict"] == "fail"
    assert data["counts"]["ArgumentMismatch"] == 1
    assert data["results"][0]["contractVersion"] == CONTRACT.version
    assert data["results"][0]["expectation"]["source"]["line"] == 1
    assert json.loads(render(report, "json")) == data
