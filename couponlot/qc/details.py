"""Structured ``validation_details`` payloads, one variant per audit type.

The JSON produced by :meth:`to_dict` keeps the keys the dashboard's details
formatter reads: ``expected``/``actual`` for the distribution check,
``expected_per_box``/``box_compositions`` for the box check and
``total_consecutive_issues``/``issues`` for the consecutive check. A
``message`` key is only written when an audit could not run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping, Optional, Union

DISTRIBUTION_CHECK = "distribution_check"
BOX_COMPOSITION = "box_composition"
CONSECUTIVE_CHECK = "consecutive_check"
VALIDATION_TYPES = (DISTRIBUTION_CHECK, BOX_COMPOSITION, CONSECUTIVE_CHECK)


def _int_keys(mapping: Mapping[Any, Any]) -> dict[int, Any]:
    return {int(key): value for key, value in mapping.items()}


def _str_keys(mapping: Mapping[int, Any]) -> dict[str, Any]:
    return {str(key): value for key, value in sorted(mapping.items())}


def _per_box_value(value: Any) -> Union[int, float]:
    number = float(value)
    return int(number) if number.is_integer() else number


@dataclass(frozen=True)
class DistributionDetail:
    """Expected vs actual whole-lot counts per prize amount."""

    validation_type: ClassVar[str] = DISTRIBUTION_CHECK

    expected: dict[int, int] = field(default_factory=dict)
    actual: dict[int, int] = field(default_factory=dict)
    issues: tuple[str, ...] = ()
    message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "expected": _str_keys(self.expected),
            "actual": _str_keys(self.actual),
            "issues": list(self.issues),
        }
        if self.message is not None:
            payload["message"] = self.message
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "DistributionDetail":
        return cls(
            expected={k: int(v) for k, v in _int_keys(payload.get("expected", {})).items()},
            actual={k: int(v) for k, v in _int_keys(payload.get("actual", {})).items()},
            issues=tuple(payload.get("issues", ())),
            message=payload.get("message"),
        )


@dataclass(frozen=True)
class BoxCompositionDetail:
    """Expected per-box counts and the observed composition of every box."""

    validation_type: ClassVar[str] = BOX_COMPOSITION

    expected_per_box: dict[int, Union[int, float]] = field(default_factory=dict)
    box_compositions: dict[int, dict[int, int]] = field(default_factory=dict)
    issues: tuple[str, ...] = ()
    message: Optional[str] = None

    def mismatched_boxes(self) -> list[int]:
        """Boxes whose counts differ from ``expected_per_box`` for any amount."""

        return [
            box
            for box, counts in sorted(self.box_compositions.items())
            if any(
                counts.get(amount, 0) != expected
                for amount, expected in self.expected_per_box.items()
            )
        ]

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "expected_per_box": _str_keys(self.expected_per_box),
            "box_compositions": {
                str(box): _str_keys(counts)
                for box, counts in sorted(self.box_compositions.items())
            },
            "issues": list(self.issues),
        }
        if self.message is not None:
            payload["message"] = self.message
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "BoxCompositionDetail":
        compositions = {
            box: {amount: int(count) for amount, count in _int_keys(counts).items()}
            for box, counts in _int_keys(payload.get("box_compositions", {})).items()
        }
        return cls(
            expected_per_box={
                amount: _per_box_value(value)
                for amount, value in _int_keys(payload.get("expected_per_box", {})).items()
            },
            box_compositions=compositions,
            issues=tuple(payload.get("issues", ())),
            message=payload.get("message"),
        )


@dataclass(frozen=True)
class ConsecutiveDetail:
    """Count and list of adjacent coupons sharing a non-zero prize."""

    validation_type: ClassVar[str] = CONSECUTIVE_CHECK

    total_consecutive_issues: int = 0
    issues: tuple[dict[str, Any], ...] = ()
    message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "total_consecutive_issues": self.total_consecutive_issues,
            "issues": [dict(issue) for issue in self.issues],
        }
        if self.message is not None:
            payload["message"] = self.message
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ConsecutiveDetail":
        return cls(
            total_consecutive_issues=int(payload.get("total_consecutive_issues", 0)),
            issues=tuple(dict(issue) for issue in payload.get("issues", ())),
            message=payload.get("message"),
        )


ValidationDetail = Union[DistributionDetail, BoxCompositionDetail, ConsecutiveDetail]

DETAIL_TYPES: dict[str, type] = {
    DISTRIBUTION_CHECK: DistributionDetail,
    BOX_COMPOSITION: BoxCompositionDetail,
    CONSECUTIVE_CHECK: ConsecutiveDetail,
}


def parse_validation_details(
    validation_type: str, payload: Mapping[str, Any]
) -> ValidationDetail:
    """Decode a stored payload into the variant matching ``validation_type``.

    Raises
    ------
    ValueError
        If ``validation_type`` is not one of the three audit types.
    """

    try:
        detail_cls = DETAIL_TYPES[validation_type]
    except KeyError as exc:
        raise ValueError(f"Unknown validation type '{validation_type}'") from exc
    return detail_cls.from_dict(payload)


def error_detail(validation_type: str, message: str) -> ValidationDetail:
    """Build the payload recorded when an audit could not run."""

    try:
        detail_cls = DETAIL_TYPES[validation_type]
    except KeyError as exc:
        raise ValueError(f"Unknown validation type '{validation_type}'") from exc
    return detail_cls(message=message)


__all__ = [
    "BOX_COMPOSITION",
    "BoxCompositionDetail",
    "CONSECUTIVE_CHECK",
    "ConsecutiveDetail",
    "DETAIL_TYPES",
    "DISTRIBUTION_CHECK",
    "DistributionDetail",
    "VALIDATION_TYPES",
    "ValidationDetail",
    "error_detail",
    "parse_validation_details",
]
