"""Tests for directive generation rules."""

import json
import logging

import pytest

from directive_engine.core.constants import ENGINE_VERSION, ReasonCode, Status
from directive_engine.core.directives import aggregate_status, generate_directives
from directive_engine.core.errors import PartProcessingError, TimestampError
from directive_engine.core.geometry import quat
from directive_engine.core.messages.directives import Step

from helpers import (
    make_as_built_part,
    make_constraint,
    make_datasets,
    make_nominal_part,
    make_single_part,
    quat_about,
)


def _only_step(*args, **kwargs) -> Step:
    output = generate_directives(*make_single_part(*args, **kwargs))
    assert len(output.steps) == 1
    return output.steps[0]


class TestScenarios:
    def test_translation_only_correction(self) -> None:
        step = _only_step((5.0, 0.0, 0.0), rotation_mode="fixed")

        assert step.status == Status.PENDING
        assert step.reason_codes == [
            ReasonCode.TRANSLATION_OUT_OF_TOLERANCE,
            ReasonCode.TRANSLATE_ONLY,
        ]
        assert len(step.actions) == 1
        action = step.actions[0]
        assert action.type == "translate"
        assert action.delta.translation_mm == pytest.approx((-5.0, 0.0, 0.0))
        assert action.delta.rotation_quat_xyzw == quat.identity()
        assert not action.clamp_applied
        assert step.computed_errors.translation_error_mm_vec == pytest.approx((-5.0, 0.0, 0.0))
        assert step.computed_errors.translation_error_norm_mm == pytest.approx(5.0)

        verification = step.verification[0]
        assert verification.expected_result == "expected_pass"
        assert verification.expected_residual.translation_mm_vec == pytest.approx((0.0, 0.0, 0.0))

    def test_low_confidence_needs_review(self) -> None:
        step = _only_step((500.0, 0.0, 0.0), quat_about("z", 45), confidence=0.5)

        assert step.status == Status.NEEDS_REVIEW
        assert step.reason_codes == [ReasonCode.LOW_CONFIDENCE]
        assert [a.type for a in step.actions] == ["noop"]
        verification = step.verification[0]
        assert verification.type == "re_scan"
        assert verification.expected_result == "unknown"
        assert verification.expected_residual.translation_mm_vec == pytest.approx(
            (-500.0, 0.0, 0.0)
        )
        assert step.pose_confidence == 0.5

    def test_low_confidence_overrides_verification_method(self) -> None:
        step = _only_step(
            (5.0, 0.0, 0.0),
            confidence=0.1,
            verification={"method": "manual_inspection", "notes": "Check with laser level."},
        )
        assert step.verification[0].type == "re_scan"
        assert step.verification[0].notes == "Check with laser level."

    def test_translation_beyond_max_norm_blocked(self) -> None:
        step = _only_step((120.0, 0.0, 0.0), translation_max_norm_mm=100.0)

        assert step.status == Status.BLOCKED
        assert step.actions == []
        assert step.reason_codes == [
            ReasonCode.OUTSIDE_LIMITS_BLOCKED,
            ReasonCode.TRANSLATION_EXCEEDS_MAX_NORM,
        ]
        verification = step.verification[0]
        assert verification.expected_result == "expected_fail"
        assert verification.expected_residual.translation_mm_vec == pytest.approx(
            (-120.0, 0.0, 0.0)
        )
        assert "escalate" in (verification.notes or "")


class TestWithinTolerance:
    def test_ok_step(self) -> None:
        step = _only_step((0.5, 0.0, 0.0), quat_about("x", 0.5))

        assert step.status == Status.OK
        assert step.reason_codes == [ReasonCode.WITHIN_TOLERANCE]
        assert [a.type for a in step.actions] == ["noop"]
        verification = step.verification[0]
        assert verification.expected_result == "expected_pass"
        assert verification.expected_residual.translation_mm_vec == (0.0, 0.0, 0.0)
        assert verification.expected_residual.rotation_deg == 0.0

    def test_exactly_at_tolerance_is_ok(self) -> None:
        step = _only_step((1.0, 0.0, 0.0))
        assert step.status == Status.OK

    def test_error_inside_margin_is_ok(self) -> None:
        step = _only_step((1.0 + 5e-10, 0.0, 0.0))

        assert step.status == Status.OK
        assert step.reason_codes == [ReasonCode.WITHIN_TOLERANCE]
        assert [a.type for a in step.actions] == ["noop"]
        assert step.verification[0].expected_result == "expected_pass"

    def test_just_past_margin_is_corrected(self) -> None:
        step = _only_step((1.0 + 1e-6, 0.0, 0.0))

        assert step.status == Status.PENDING
        assert step.reason_codes == [
            ReasonCode.TRANSLATION_OUT_OF_TOLERANCE,
            ReasonCode.TRANSLATE_ONLY,
        ]
        assert [a.type for a in step.actions] == ["translate"]

    def test_verification_acceptance_copies_tolerances(self) -> None:
        step = _only_step(tolerances={"translation_mm": 2.5, "rotation_deg": 0.25})
        acceptance = step.verification[0].acceptance
        assert acceptance.translation_mm == 2.5
        assert acceptance.rotation_deg == 0.25


class TestMissingData:
    def test_missing_as_built(self) -> None:
        nominal, as_built, constraints = make_datasets(
            [make_nominal_part("P1"), make_nominal_part("P2")],
            [make_as_built_part("P1")],
            [make_constraint("P1"), make_constraint("P2")],
        )
        step = generate_directives(nominal, as_built, constraints).steps[1]

        assert step.part_id == "P2"
        assert step.status == Status.NEEDS_REVIEW
        assert step.reason_codes == [ReasonCode.MISSING_INPUT_DATA]
        assert step.pose_confidence is None
        assert step.computed_errors.translation_error_norm_mm == 0.0
        assert [a.type for a in step.actions] == ["noop"]
        verification = step.verification[0]
        assert verification.type == "re_scan"
        assert verification.expected_result == "unknown"
        assert verification.notes == "Resolve missing inputs."

    def test_missing_constraint_still_reports_errors(self) -> None:
        nominal, as_built, constraints = make_datasets(
            [make_nominal_part("P1")],
            [make_as_built_part("P1", translation=(0.0, 3.0, 4.0))],
            [],
        )
        step = generate_directives(nominal, as_built, constraints).steps[0]

        assert step.status == Status.NEEDS_REVIEW
        assert step.computed_errors.translation_error_norm_mm == pytest.approx(5.0)
        assert step.verification[0].acceptance.translation_mm == 0.0
        assert step.pose_confidence == 1.0


class TestTranslation:
    def test_masked_to_allowed_axes(self) -> None:
        step = _only_step(
            (5.0, 5.0, 0.0), allowed_translation_axes={"x": True, "y": False, "z": False}
        )

        assert step.status == Status.PENDING
        assert step.actions[0].delta.translation_mm == pytest.approx((-5.0, 0.0, 0.0))
        residual = step.verification[0].expected_residual.translation_mm_vec
        assert residual == pytest.approx((0.0, -5.0, 0.0))

    def test_per_axis_clamp(self) -> None:
        step = _only_step((5.0, 0.0, 0.0), translation_max_abs_mm={"x": 2.0, "y": 2.0, "z": 2.0})

        assert step.status == Status.CLAMPED
        assert step.reason_codes == [
            ReasonCode.TRANSLATION_OUT_OF_TOLERANCE,
            ReasonCode.CLAMPED_TO_LIMITS,
            ReasonCode.TRANSLATE_CLAMPED,
        ]
        action = step.actions[0]
        assert action.clamp_applied
        assert action.delta.translation_mm == pytest.approx((-2.0, 0.0, 0.0))
        assert action.original_delta is not None
        assert action.original_delta.translation_mm == pytest.approx((-5.0, 0.0, 0.0))
        residual = step.verification[0].expected_residual.translation_mm_vec
        assert residual == pytest.approx((-3.0, 0.0, 0.0))
        assert step.verification[0].expected_result == "expected_pass"

    def test_clamp_policy_none_skips_clamp(self) -> None:
        nominal, as_built, constraints = make_datasets(
            [make_nominal_part()],
            [make_as_built_part(translation=(5.0, 0.0, 0.0))],
            [make_constraint(translation_max_abs_mm={"x": 2.0, "y": 2.0, "z": 2.0})],
            clamp_policy="none",
        )
        step = generate_directives(nominal, as_built, constraints).steps[0]
        assert step.status == Status.PENDING
        assert step.actions[0].delta.translation_mm == pytest.approx((-5.0, 0.0, 0.0))


class TestRotationModes:
    def test_fixed_rotation_blocks_everything(self) -> None:
        step = _only_step((5.0, 0.0, 0.0), quat_about("z", 10), rotation_mode="fixed")

        assert step.status == Status.BLOCKED
        assert step.actions == []
        assert step.reason_codes == [
            ReasonCode.TRANSLATION_OUT_OF_TOLERANCE,
            ReasonCode.ROTATION_OUT_OF_TOLERANCE,
            ReasonCode.ROTATION_LOCKED_BLOCKED,
        ]
        verification = step.verification[0]
        assert verification.expected_result == "expected_fail"
        assert verification.expected_residual.translation_mm_vec == pytest.approx(
            (-5.0, 0.0, 0.0)
        )
        assert verification.expected_residual.rotation_deg == pytest.approx(10.0)

    def test_index_rotation(self) -> None:
        step = _only_step(
            as_built_rotation=quat_about("z", 15),
            rotation_mode="index",
            index_rotation={
                "axis": "z",
                "increment_deg": 15.0,
                "allowed_indices": [0, 1, 2, 3],
                "nominal_index": 3,
            },
        )

        assert step.status == Status.PENDING
        assert step.reason_codes == [
            ReasonCode.ROTATION_OUT_OF_TOLERANCE,
            ReasonCode.INDEX_ROTATION,
        ]
        action = step.actions[0]
        assert action.type == "rotate_to_index"
        assert action.axis == "z"
        assert action.target_index == 3
        assert quat.angle_deg(action.delta.rotation_quat_xyzw) == pytest.approx(15.0)
        assert step.verification[0].expected_residual.rotation_deg == 0.0

    def test_index_rotation_missing_config(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="directive_engine.core.directives"):
            step = _only_step(as_built_rotation=quat_about("x", 15), rotation_mode="index")

        action = step.actions[0]
        assert action.axis == "z"
        assert action.target_index == 0
        assert ReasonCode.INDEX_ROTATION_CONFIG_MISSING in step.reason_codes
        assert "index_rotation config missing" in caplog.text

    def test_free_single_axis(self) -> None:
        step = _only_step(
            as_built_rotation=quat_about("z", -10),
            allowed_rotation_axes={"x": False, "y": False, "z": True},
        )

        assert step.status == Status.PENDING
        assert step.reason_codes == [
            ReasonCode.ROTATION_OUT_OF_TOLERANCE,
            ReasonCode.ROTATION_FREE_SINGLE_AXIS,
        ]
        action = step.actions[0]
        assert action.type == "rotate"
        assert action.axis == "z"
        assert action.delta.rotation_quat_xyzw == pytest.approx(quat_about("z", 10))
        assert step.verification[0].expected_residual.rotation_deg == 0.0

    def test_free_axis_follows_error_axis(self) -> None:
        step = _only_step(as_built_rotation=quat_about("y", 20))
        assert step.actions[0].axis == "y"
        assert ReasonCode.ROTATION_FREE_SINGLE_AXIS not in step.reason_codes

    def test_free_axis_tie_prefers_x(self) -> None:
        step = _only_step(
            as_built_rotation=quat_about("y", 20),
            allowed_rotation_axes={"x": True, "y": False, "z": True},
        )
        assert step.actions[0].axis == "x"

    def test_free_rotation_clamped(self) -> None:
        step = _only_step(
            as_built_rotation=quat_about("z", 12),
            rotation_max_abs_deg={"x": 5.0, "y": 5.0, "z": 5.0},
        )

        assert step.status == Status.CLAMPED
        assert ReasonCode.CLAMPED_TO_LIMITS in step.reason_codes
        assert ReasonCode.ROTATION_CLAMPED in step.reason_codes
        action = step.actions[0]
        assert action.clamp_applied
        assert quat.angle_deg(action.delta.rotation_quat_xyzw) == pytest.approx(5.0)
        assert action.original_delta is not None
        assert quat.angle_deg(action.original_delta.rotation_quat_xyzw) == pytest.approx(12.0)
        assert step.verification[0].expected_residual.rotation_deg == pytest.approx(7.0)

    def test_translate_and_rotate_both_clamped(self) -> None:
        step = _only_step(
            (10.0, 0.0, 0.0),
            quat_about("z", 12),
            translation_max_abs_mm={"x": 4.0, "y": 4.0, "z": 4.0},
            rotation_max_abs_deg={"x": 5.0, "y": 5.0, "z": 5.0},
        )
        assert step.status == Status.CLAMPED
        assert [a.type for a in step.actions] == ["translate", "rotate"]
        assert step.reason_codes.count(ReasonCode.CLAMPED_TO_LIMITS) == 1


class TestRun:
    def _make_run(self):
        return make_datasets(
            [make_nominal_part(f"P{i}") for i in range(1, 6)],
            [
                make_as_built_part("P1"),
                make_as_built_part("P2", translation=(5.0, 0.0, 0.0)),
                make_as_built_part("P3", translation=(200.0, 0.0, 0.0)),
                make_as_built_part("P4", translation=(5.0, 0.0, 0.0), confidence=0.2),
            ],
            [
                make_constraint("P1"),
                make_constraint("P2"),
                make_constraint("P3", translation_max_norm_mm=100.0),
                make_constraint("P4"),
                make_constraint("P5"),
            ],
        )

    def test_counts_sum_to_part_count(self) -> None:
        output = generate_directives(*self._make_run())

        counts = output.summary.counts_by_status
        assert sum(counts.values()) == 5
        assert list(counts) == ["ok", "pending", "clamped", "blocked", "needs_review"]
        assert counts == {"ok": 1, "pending": 1, "clamped": 0, "blocked": 1, "needs_review": 2}

    def test_ids_are_sequential(self) -> None:
        output = generate_directives(*self._make_run())

        assert [s.step_id for s in output.steps] == ["S1", "S2", "S3", "S4", "S5"]
        action_ids = [a.action_id for s in output.steps for a in s.actions]
        assert action_ids == [f"A{i}" for i in range(1, len(action_ids) + 1)]
        verification_ids = [v.verification_id for s in output.steps for v in s.verification]
        assert verification_ids == ["V1", "V2", "V3", "V4", "V5"]

    def test_header_fields(self) -> None:
        nominal, as_built, constraints = self._make_run()
        output = generate_directives(
            nominal, as_built, constraints, nominal_path="data/nominal.json"
        )

        assert output.schema_version == "v0.1"
        assert output.dataset_id == "museum_wall_01"
        assert output.engine_version == ENGINE_VERSION
        assert output.generated_at == "2024-01-15T10:30:01.000Z"
        assert output.inputs.nominal_poses == "data/nominal.json"
        assert output.inputs.as_built_poses == "unknown"
        assert output.inputs.confidence_threshold == 0.7

    def test_overrides(self) -> None:
        output = generate_directives(
            *self._make_run(), engine_version="custom/9", generated_at="2025-01-01T00:00:00.000Z"
        )
        assert output.engine_version == "custom/9"
        assert output.generated_at == "2025-01-01T00:00:00.000Z"

    def test_deterministic(self) -> None:
        first = generate_directives(*self._make_run()).to_json()
        second = generate_directives(*self._make_run()).to_json()
        assert first == second

    def test_json_omits_absent_fields(self) -> None:
        data = json.loads(generate_directives(*self._make_run()).to_json())
        translate = data["steps"][1]["actions"][0]
        assert translate["type"] == "translate"
        assert "original_delta" not in translate
        assert "pose_confidence" not in data["steps"][4]
        assert "delta" not in data["steps"][0]["actions"][0]

    def test_invalid_measured_at(self) -> None:
        nominal, as_built, constraints = self._make_run()
        as_built = as_built.model_copy(update={"measured_at": "not-a-date"})
        with pytest.raises(TimestampError) as exc_info:
            generate_directives(nominal, as_built, constraints)
        assert exc_info.value.invalid_value == "not-a-date"

    def test_non_finite_error_raises(self) -> None:
        nominal, as_built, constraints = make_datasets(
            [make_nominal_part(translation=(float("inf"), 0.0, 0.0))],
            [make_as_built_part()],
            [make_constraint()],
        )
        with pytest.raises(PartProcessingError) as exc_info:
            generate_directives(nominal, as_built, constraints)
        assert exc_info.value.part_id == "P1"
        assert exc_info.value.step_id == "S1"

    def test_trace_logged_at_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="directive_engine.core.directives"):
            generate_directives(*self._make_run())
        assert "[P1] Processing part" in caplog.text
        assert "[P2] S2: status=pending" in caplog.text
        assert "Complete: 5 steps processed" in caplog.text


class TestAggregateStatus:
    def test_priority(self) -> None:
        assert aggregate_status([Status.OK, Status.PENDING]) == Status.PENDING
        assert aggregate_status([Status.CLAMPED, Status.PENDING]) == Status.CLAMPED
        assert aggregate_status([Status.CLAMPED, Status.NEEDS_REVIEW]) == Status.NEEDS_REVIEW
        assert aggregate_status([Status.NEEDS_REVIEW, Status.BLOCKED, Status.OK]) == Status.BLOCKED

    def test_empty_is_ok(self) -> None:
        assert aggregate_status([]) == Status.OK
