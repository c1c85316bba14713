"""Aggregate audit outcomes into QC validation records and a release verdict."""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Sequence, Union

from ..config import DEFAULT_SETTINGS, LotSettings
from ..db.utils import dt_iso
from ..errors import AuditInputError
from ..lot.prize_table import PrizeTable
from .auditors import (
    AuditOutcome,
    BoxCompositionAuditor,
    ConsecutiveAuditor,
    DistributionAuditor,
)
from .details import (
    BOX_COMPOSITION,
    CONSECUTIVE_CHECK,
    DISTRIBUTION_CHECK,
    BoxCompositionDetail,
    ConsecutiveDetail,
    DistributionDetail,
    ValidationDetail,
)
from .findings import (
    BOX_COUNT_MISMATCH,
    BoxCompositionMismatch,
    ConsecutiveDuplicate,
    DistributionMismatch,
    ValidationFinding,
)

logger = logging.getLogger(__name__)

AuditInput = Union[AuditOutcome, Sequence[ValidationFinding]]


@dataclass(frozen=True)
class ValidationRecord:
    """One QC validation row, ready to be persisted.

    Attributes
    ----------
    batch_id : Optional[int]
        Owning batch identifier, when the batch is persisted.
    batch_number : Optional[int]
        External batch number, for logging and rendering.
    validation_type : str
        ``"distribution_check"``, ``"box_composition"`` or ``"consecutive_check"``.
    validation_status : str
        ``"pass"`` iff the audit ran and produced no findings, else ``"fail"``.
    validation_details : ValidationDetail
        Tagged detail payload matching ``validation_type``.
    findings : tuple[ValidationFinding, ...]
        Findings backing the status.
    validated_by : str
        Name of the person or process that ran the audit.
    validated_by_user_id : Optional[int]
        User id of the validator, if known.
    validated_at : datetime
        Timestamp of the audit run.
    """

    batch_id: Optional[int]
    batch_number: Optional[int]
    validation_type: str
    validation_status: str
    validation_details: ValidationDetail
    findings: tuple[ValidationFinding, ...]
    validated_by: str
    validated_by_user_id: Optional[int]
    validated_at: datetime

    @property
    def passed(self) -> bool:
        return self.validation_status == "pass"

    def to_dict(self) -> dict[str, Any]:
        """Serialize in the QC validation shape served to the dashboard."""

        return {
            "batch_id": self.batch_id,
            "validation_type": self.validation_type,
            "validation_status": self.validation_status,
            "validation_details": json.dumps(self.validation_details.to_dict()),
            "validated_by": self.validated_by,
            "validated_by_user_id": self.validated_by_user_id,
            "validated_at": dt_iso(self.validated_at),
        }


@dataclass(frozen=True)
class QCReport:
    """The three validation records of an audit run and the resulting verdict."""

    batch_id: Optional[int]
    batch_number: Optional[int]
    records: tuple[ValidationRecord, ...]

    @property
    def passed(self) -> bool:
        return all(record.passed for record in self.records)

    @property
    def batch_status(self) -> str:
        """Release status the batch should move to from ``completed``."""
        return "qc_passed" if self.passed else "qc_failed"

    def record(self, validation_type: str) -> ValidationRecord:
        for record in self.records:
            if record.validation_type == validation_type:
                return record
        raise KeyError(f"No '{validation_type}' record in this report")

    @property
    def findings(self) -> list[ValidationFinding]:
        return [finding for record in self.records for finding in record.findings]


class ValidationReporter:
    """Turn the three audit outcomes into :class:`QCReport` records."""

    def report(
        self,
        batch: Any,
        distribution: AuditInput,
        box_composition: AuditInput,
        consecutive: AuditInput,
        *,
        validated_by: str,
        validated_by_user_id: Optional[int] = None,
        validated_at: Optional[datetime] = None,
    ) -> QCReport:
        """Build one record per audit type and the overall verdict.

        Parameters
        ----------
        batch : Any
            ORM ``Batch`` or :class:`~couponlot.lot.BatchDescriptor`.
        distribution, box_composition, consecutive : AuditInput
            Either the :class:`AuditOutcome` returned by the matching
            auditor's ``inspect`` or the bare list of findings returned by its
            ``audit``. For bare findings the detail payload is rebuilt from
            the findings alone.
        validated_by : str
            Name recorded on every record.
        validated_by_user_id : Optional[int], default: None
            User id recorded on every record.
        validated_at : Optional[datetime], default: None
            Timestamp shared by the three records; defaults to now (UTC).

        Returns
        -------
        QCReport
            Report whose ``batch_status`` is ``"qc_passed"`` iff all three
            records pass.
        """

        if not validated_by:
            raise ValueError("validated_by is required")
        timestamp = validated_at or datetime.now(timezone.utc)
        batch_id = getattr(batch, "id", None)
        batch_number = getattr(batch, "batch_number", None)

        records = []
        for validation_type, audit_input in (
            (DISTRIBUTION_CHECK, distribution),
            (BOX_COMPOSITION, box_composition),
            (CONSECUTIVE_CHECK, consecutive),
        ):
            outcome = _as_outcome(validation_type, audit_input)
            records.append(
                ValidationRecord(
                    batch_id=batch_id,
                    batch_number=batch_number,
                    validation_type=validation_type,
                    validation_status=outcome.status,
                    validation_details=outcome.detail,
                    findings=outcome.findings,
                    validated_by=validated_by,
                    validated_by_user_id=validated_by_user_id,
                    validated_at=timestamp,
                )
            )

        report = QCReport(batch_id=batch_id, batch_number=batch_number, records=tuple(records))
        logger.debug(
            f"QC report for batch {batch_number}: "
            + ", ".join(f"{r.validation_type}={r.validation_status}" for r in records)
        )
        return report


def _as_outcome(validation_type: str, audit_input: AuditInput) -> AuditOutcome:
    if isinstance(audit_input, AuditOutcome):
        if audit_input.validation_type != validation_type:
            raise ValueError(
                f"Expected a '{validation_type}' outcome, got "
                f"'{audit_input.validation_type}'"
            )
        return audit_input
    findings = tuple(audit_input)
    return AuditOutcome(
        validation_type=validation_type,
        findings=findings,
        detail=_detail_from_findings(validation_type, findings),
    )


def _detail_from_findings(
    validation_type: str, findings: Sequence[ValidationFinding]
) -> ValidationDetail:
    issues = tuple(finding.description for finding in findings)
    if validation_type == DISTRIBUTION_CHECK:
        mismatches = [f for f in findings if isinstance(f, DistributionMismatch)]
        return DistributionDetail(
            expected={f.prize_amount: f.expected for f in mismatches},
            actual={f.prize_amount: f.actual for f in mismatches},
            issues=issues,
        )
    if validation_type == BOX_COMPOSITION:
        compositions: dict[int, dict[int, int]] = {}
        expected_per_box: dict[int, Union[int, float]] = {}
        for f in findings:
            if not isinstance(f, BoxCompositionMismatch) or f.prize_amount is None:
                continue
            expected_per_box.setdefault(f.prize_amount, f.expected)
            if f.reason == BOX_COUNT_MISMATCH and f.box_number is not None:
                compositions.setdefault(f.box_number, {})[f.prize_amount] = f.actual
        return BoxCompositionDetail(
            expected_per_box=expected_per_box,
            box_compositions=compositions,
            issues=issues,
        )
    duplicates = [f for f in findings if isinstance(f, ConsecutiveDuplicate)]
    return ConsecutiveDetail(
        total_consecutive_issues=len(duplicates),
        issues=tuple(
            {
                "coupon_number": f.coupon_number,
                "previous_coupon_number": f.previous_coupon_number,
                "prize_amount": f.prize_amount,
                "description": f.description,
            }
            for f in duplicates
        ),
    )


def _run_guarded(
    validation_type: str, batch_number: Any, audit: Callable[[], AuditOutcome]
) -> AuditOutcome:
    try:
        return audit()
    except AuditInputError as exc:
        logger.error(f"{validation_type} for batch {batch_number} could not run: {exc}")
        return AuditOutcome.from_error(validation_type, exc)


def run_audits(
    batch: Any,
    coupons: Iterable[Any],
    prize_configs: Iterable[Any],
    *,
    validated_by: str,
    validated_by_user_id: Optional[int] = None,
    validated_at: Optional[datetime] = None,
    settings: Optional[LotSettings] = None,
    reporter: Optional[ValidationReporter] = None,
) -> QCReport:
    """Run the three audits independently and report on all of them.

    An :class:`AuditInputError` raised by one audit is logged and recorded as
    a failed record for that audit only; the other audits still run, so the
    returned report always holds three records.

    Raises
    ------
    ConfigError
        If ``prize_configs`` do not form a valid prize table.
    """

    settings = settings or DEFAULT_SETTINGS
    table = PrizeTable.from_configs(
        prize_configs, default_coupons_per_box=settings.coupons_per_box
    )
    coupon_list = list(coupons)
    batch_number = getattr(batch, "batch_number", None)
    total_boxes = getattr(batch, "total_boxes", None)

    distribution = _run_guarded(
        DISTRIBUTION_CHECK,
        batch_number,
        lambda: DistributionAuditor(settings).inspect(coupon_list, table),
    )
    box_composition = _run_guarded(
        BOX_COMPOSITION,
        batch_number,
        lambda: BoxCompositionAuditor(settings).inspect(
            coupon_list, table, total_boxes=total_boxes
        ),
    )
    consecutive = _run_guarded(
        CONSECUTIVE_CHECK,
        batch_number,
        lambda: ConsecutiveAuditor(settings).inspect(coupon_list),
    )

    finding_counts = Counter(
        outcome.validation_type
        for outcome in (distribution, box_composition, consecutive)
        for _ in outcome.findings
    )
    if finding_counts:
        logger.info(f"Batch {batch_number} audit findings: {dict(finding_counts)}")

    return (reporter or ValidationReporter()).report(
        batch,
        distribution,
        box_composition,
        consecutive,
        validated_by=validated_by,
        validated_by_user_id=validated_by_user_id,
        validated_at=validated_at,
    )


__all__ = [
    "QCReport",
    "ValidationRecord",
    "ValidationReporter",
    "run_audits",
]
