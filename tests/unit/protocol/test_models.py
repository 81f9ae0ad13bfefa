"""Unit tests — ActionDescriptor parsing, ExecutionOutcome and ExecutionReport."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from sheetpilot.protocol.models import (
    ActionDescriptor,
    DescriptorParseFailure,
    ErrorKind,
    ExecutionOutcome,
    ExecutionReport,
    OutcomeStatus,
    parse_descriptor,
)


@pytest.mark.unit
class TestActionDescriptor:
    def test_canonical_keys(self) -> None:
        d = ActionDescriptor.model_validate(
            {"kind": "values", "target": "A1", "parameters": {"values": [[1]]}}
        )
        assert d.kind == "values"
        assert d.target == "A1"
        assert d.parameters == {"values": [[1]]}
        assert d.depends_on is None

    def test_type_and_data_aliases(self) -> None:
        d = ActionDescriptor.model_validate({"type": "values", "target": "A1", "data": {"values": 5}})
        assert d.kind == "values"
        assert d.parameters == {"values": 5}

    def test_json_encoded_data_is_decoded(self) -> None:
        d = ActionDescriptor.model_validate({"type": "values", "target": "A1", "data": '{"values": 5}'})
        assert d.parameters == {"values": 5}

    def test_blank_data_string_is_empty(self) -> None:
        d = ActionDescriptor.model_validate({"type": "unfreezePane", "data": "  "})
        assert d.parameters == {}

    def test_invalid_json_data_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ActionDescriptor.model_validate({"type": "values", "data": "{not json"})

    def test_blank_target_becomes_none(self) -> None:
        d = ActionDescriptor.model_validate({"kind": "unfreezePane", "target": "   "})
        assert d.target is None

    def test_depends_on_alias(self) -> None:
        d = ActionDescriptor.model_validate({"kind": "values", "dependsOn": "Sales"})
        assert d.depends_on == "Sales"

    def test_descriptor_is_frozen(self) -> None:
        d = ActionDescriptor(kind="values")
        with pytest.raises(ValidationError):
            d.kind = "formula"


@pytest.mark.unit
class TestParseDescriptor:
    def test_returns_descriptor(self) -> None:
        assert isinstance(parse_descriptor({"kind": "values"}), ActionDescriptor)

    def test_passes_descriptor_through(self) -> None:
        d = ActionDescriptor(kind="values")
        assert parse_descriptor(d) is d

    def test_non_object_entry(self) -> None:
        failure = parse_descriptor(["values"])
        assert isinstance(failure, DescriptorParseFailure)
        assert failure.error_kind == ErrorKind.UNKNOWN_ACTION
        assert failure.kind == ""

    def test_missing_kind_is_unknown_action(self) -> None:
        failure = parse_descriptor({"target": "A1"})
        assert isinstance(failure, DescriptorParseFailure)
        assert failure.error_kind == ErrorKind.UNKNOWN_ACTION
        assert failure.target == "A1"

    def test_bad_parameters_is_invalid_parameter(self) -> None:
        failure = parse_descriptor({"kind": "values", "data": "{oops"})
        assert isinstance(failure, DescriptorParseFailure)
        assert failure.error_kind == ErrorKind.INVALID_PARAMETER
        assert failure.kind == "values"
        assert failure.field_name in ("data", "parameters")


def _outcome(index: int, status: OutcomeStatus = OutcomeStatus.APPLIED, **kwargs) -> ExecutionOutcome:
    return ExecutionOutcome(index=index, kind="values", status=status, **kwargs)


@pytest.mark.unit
class TestExecutionOutcome:
    def test_entity_comes_from_detail(self) -> None:
        assert _outcome(0, detail={"entity": "Sales"}).entity == "Sales"
        assert _outcome(0).entity is None

    def test_to_dict(self) -> None:
        outcome = _outcome(
            2, OutcomeStatus.FAILED, target="A1", error_kind=ErrorKind.DOCUMENT_REJECTED,
            message="nope", warnings=("careful",),
        )
        data = outcome.to_dict()
        assert data["index"] == 2
        assert data["status"] == "failed"
        assert data["error_kind"] == "DocumentRejected"
        assert data["message"] == "nope"
        assert data["warnings"] == ["careful"]


@pytest.mark.unit
class TestExecutionReport:
    def test_counts_cover_every_status(self) -> None:
        report = ExecutionReport(batch_id="b", action_count=3)
        report.append(_outcome(0))
        report.append(_outcome(1, OutcomeStatus.REJECTED))
        assert report.counts() == {"applied": 1, "skipped": 0, "failed": 0, "rejected": 1}
        assert not report.is_complete

    def test_by_input_order_and_get(self) -> None:
        report = ExecutionReport(batch_id="b", action_count=2)
        report.append(_outcome(1))
        report.append(_outcome(0, OutcomeStatus.SKIPPED))
        assert [o.index for o in report.by_input_order()] == [0, 1]
        assert report.get(0).status == OutcomeStatus.SKIPPED
        assert report.get(5) is None
        assert report.is_complete

    def test_all_applied_and_failures(self) -> None:
        report = ExecutionReport(batch_id="b", action_count=2)
        report.append(_outcome(0))
        assert report.all_applied
        report.append(_outcome(1, OutcomeStatus.FAILED))
        assert not report.all_applied
        assert report.has_failures

    def test_to_dict(self) -> None:
        report = ExecutionReport(batch_id="b-1", action_count=1)
        report.append(_outcome(0))
        data = report.to_dict()
        assert data["batch_id"] == "b-1"
        assert data["counts"]["applied"] == 1
        assert len(data["outcomes"]) == 1
