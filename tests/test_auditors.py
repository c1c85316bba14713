import unittest
from dataclasses import replace

from couponlot.errors import AuditInputError, ConfigError
from couponlot.lot import BatchDescriptor, LotGenerator
from couponlot.qc import (
    BoxCompositionAuditor,
    BoxCompositionDetail,
    ConsecutiveAuditor,
    ConsecutiveDetail,
    DistributionAuditor,
    DistributionDetail,
    normalize_coupons,
)

CONFIGS = [{"prize_amount": 50_000, "total_coupons": 10, "coupons_per_box": 1000}]


def _coupon(number, amount, box=1):
    return {"coupon_number": f"{number:05d}", "box_number": box, "prize_amount": amount}


class AuditorTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.lot = LotGenerator().generate(BatchDescriptor(1, 10), CONFIGS)

    def _winner_index(self, box):
        return next(
            i for i, c in enumerate(self.lot) if c.box_number == box and c.is_winner
        )

    def _isolated_zero_index(self, box):
        # A no-prize coupon whose neighbours also carry no prize.
        return next(
            i
            for i, c in enumerate(self.lot)
            if c.box_number == box
            and not c.is_winner
            and not self.lot[i - 1].is_winner
            and not self.lot[i + 1].is_winner
        )


class TestDistributionAuditor(AuditorTestCase):
    def test_untampered_lot_has_no_findings(self):
        outcome = DistributionAuditor().inspect(self.lot, CONFIGS)
        self.assertTrue(outcome.passed)
        self.assertIsInstance(outcome.detail, DistributionDetail)
        self.assertEqual(outcome.detail.expected, {50_000: 10})
        self.assertEqual(outcome.detail.actual, {50_000: 10})

    def test_extra_winner_gives_exactly_one_finding(self):
        lot = list(self.lot)
        i = self._isolated_zero_index(3)
        lot[i] = replace(lot[i], prize_amount=50_000, is_winner=True)

        findings = DistributionAuditor().audit(lot, CONFIGS)
        self.assertEqual(len(findings), 1)
        self.assertEqual(findings[0].prize_amount, 50_000)
        self.assertEqual(findings[0].expected, 10)
        self.assertEqual(findings[0].actual, 11)
        self.assertIn("expected 10", findings[0].description)

    def test_unconfigured_amount_is_reported(self):
        lot = list(self.lot)
        i = self._isolated_zero_index(2)
        lot[i] = replace(lot[i], prize_amount=7_500, is_winner=True)

        findings = DistributionAuditor().audit(lot, CONFIGS)
        self.assertEqual([(f.prize_amount, f.expected, f.actual) for f in findings], [(7_500, 0, 1)])

    def test_invalid_prize_table_raises(self):
        with self.assertRaises(ConfigError):
            DistributionAuditor().audit(self.lot, CONFIGS + CONFIGS)


class TestBoxCompositionAuditor(AuditorTestCase):
    def test_untampered_lot_has_no_findings(self):
        outcome = BoxCompositionAuditor().inspect(self.lot, CONFIGS, total_boxes=10)
        self.assertTrue(outcome.passed)
        self.assertIsInstance(outcome.detail, BoxCompositionDetail)
        self.assertEqual(outcome.detail.expected_per_box, {50_000: 1})
        self.assertEqual(len(outcome.detail.box_compositions), 10)
        self.assertEqual(outcome.detail.mismatched_boxes(), [])

    def test_moving_a_winner_flags_both_boxes(self):
        lot = list(self.lot)
        winner = self._winner_index(1)
        zero = self._isolated_zero_index(2)
        lot[winner] = replace(lot[winner], prize_amount=0, prize_description="", is_winner=False)
        lot[zero] = replace(lot[zero], prize_amount=50_000, is_winner=True)

        self.assertEqual(DistributionAuditor().audit(lot, CONFIGS), [])
        outcome = BoxCompositionAuditor().inspect(lot, CONFIGS, total_boxes=10)
        findings = outcome.findings
        self.assertEqual(len(findings), 2)
        self.assertEqual({f.box_number for f in findings}, {1, 2})
        self.assertEqual({f.reason for f in findings}, {"count_mismatch"})
        self.assertEqual(outcome.detail.mismatched_boxes(), [1, 2])
        self.assertEqual(outcome.detail.box_compositions[2], {50_000: 2})

    def test_short_box_is_flagged(self):
        lot = list(self.lot)[:-1]
        findings = BoxCompositionAuditor().audit(lot, CONFIGS, total_boxes=10)
        sizes = [f for f in findings if f.reason == "box_size"]
        self.assertEqual(len(sizes), 1)
        self.assertEqual((sizes[0].box_number, sizes[0].actual), (10, 999))

    def test_box_count_defaults_from_lot_size(self):
        self.assertEqual(BoxCompositionAuditor().audit(self.lot, CONFIGS), [])

    def test_coupon_in_wrong_box_is_flagged(self):
        lot = list(self.lot)
        i = self._isolated_zero_index(4)
        lot[i] = replace(lot[i], box_number=5)

        findings = BoxCompositionAuditor().audit(lot, CONFIGS, total_boxes=10)
        ranges = [f for f in findings if f.reason == "box_range"]
        self.assertEqual(len(ranges), 1)
        self.assertEqual(ranges[0].coupon_number, lot[i].coupon_number)
        self.assertEqual((ranges[0].box_number, ranges[0].expected), (5, 4))
        self.assertIn("belongs to box 4", ranges[0].description)
        self.assertEqual(ranges[0].to_dict()["coupon_number"], lot[i].coupon_number)
        self.assertEqual(
            sorted(f.box_number for f in findings if f.reason == "box_size"), [4, 5]
        )


class TestConsecutiveAuditor(unittest.TestCase):
    def test_no_adjacent_duplicates(self):
        coupons = [_coupon(1, 5_000), _coupon(2, 0), _coupon(3, 5_000), _coupon(4, 10_000)]
        outcome = ConsecutiveAuditor().inspect(coupons)
        self.assertTrue(outcome.passed)
        self.assertIsInstance(outcome.detail, ConsecutiveDetail)
        self.assertEqual(outcome.detail.total_consecutive_issues, 0)

    def test_adjacent_winners_give_one_finding(self):
        coupons = [_coupon(1, 0), _coupon(2, 5_000), _coupon(3, 5_000), _coupon(4, 0)]
        findings = ConsecutiveAuditor().audit(coupons)
        self.assertEqual(len(findings), 1)
        self.assertEqual(findings[0].coupon_number, "00003")
        self.assertEqual(findings[0].previous_coupon_number, "00002")
        self.assertEqual(findings[0].prize_amount, 5_000)

    def test_adjacent_zero_amounts_are_fine(self):
        coupons = [_coupon(n, 0) for n in range(1, 6)]
        self.assertEqual(ConsecutiveAuditor().audit(coupons), [])

    def test_input_order_does_not_matter(self):
        coupons = [_coupon(3, 5_000), _coupon(1, 0), _coupon(2, 5_000)]
        findings = ConsecutiveAuditor().audit(coupons)
        self.assertEqual([f.coupon_number for f in findings], ["00003"])

    def test_generated_lot_has_no_adjacent_winners(self):
        lot = LotGenerator().generate(BatchDescriptor(1, 10), CONFIGS)
        self.assertEqual(ConsecutiveAuditor().audit(lot), [])


class TestAuditInput(unittest.TestCase):
    def test_empty_input_rejected(self):
        with self.assertRaises(AuditInputError):
            ConsecutiveAuditor().audit([])
        with self.assertRaises(AuditInputError):
            DistributionAuditor().audit([], CONFIGS)

    def test_malformed_coupons_rejected(self):
        with self.assertRaises(AuditInputError):
            normalize_coupons([{"coupon_number": None, "box_number": 1, "prize_amount": 0}])
        with self.assertRaises(AuditInputError):
            normalize_coupons([{"coupon_number": "00001", "box_number": 0, "prize_amount": 0}])
        with self.assertRaises(AuditInputError):
            normalize_coupons([{"coupon_number": "00001", "box_number": 1, "prize_amount": -5}])

    def test_duplicate_numbers_rejected(self):
        with self.assertRaises(AuditInputError):
            normalize_coupons([_coupon(1, 0), _coupon(1, 0)])


if __name__ == "__main__":
    unittest.main()
