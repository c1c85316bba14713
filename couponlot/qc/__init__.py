"""Quality-control audits over generated coupon lots."""

from .auditors import (
    AuditOutcome,
    BoxCompositionAuditor,
    ConsecutiveAuditor,
    DistributionAuditor,
    normalize_coupons,
)
from .details import (
    BOX_COMPOSITION,
    CONSECUTIVE_CHECK,
    DISTRIBUTION_CHECK,
    VALIDATION_TYPES,
    BoxCompositionDetail,
    ConsecutiveDetail,
    DistributionDetail,
    ValidationDetail,
    parse_validation_details,
)
from .findings import (
    BoxCompositionMismatch,
    ConsecutiveDuplicate,
    DistributionMismatch,
    ValidationFinding,
)
from .formatting import format_qc_report, format_validation_details
from .reporter import QCReport, ValidationRecord, ValidationReporter, run_audits

__all__ = [
    "AuditOutcome",
    "BOX_COMPOSITION",
    "BoxCompositionAuditor",
    "BoxCompositionDetail",
    "BoxCompositionMismatch",
    "CONSECUTIVE_CHECK",
    "ConsecutiveAuditor",
    "ConsecutiveDetail",
    "ConsecutiveDuplicate",
    "DISTRIBUTION_CHECK",
    "DistributionAuditor",
    "DistributionDetail",
    "DistributionMismatch",
    "QCReport",
    "VALIDATION_TYPES",
    "ValidationDetail",
    "ValidationFinding",
    "ValidationRecord",
    "ValidationReporter",
    "format_qc_report",
    "format_validation_details",
    "normalize_coupons",
    "parse_validation_details",
    "run_audits",
]
