import unittest

from couponlot.config import DEFAULT_SETTINGS, LotSettings


class TestLotSettings(unittest.TestCase):
    def test_defaults(self):
        self.assertEqual(DEFAULT_SETTINGS.coupons_per_box, 1000)
        self.assertEqual(DEFAULT_SETTINGS.default_total_boxes, 10)
        self.assertEqual(DEFAULT_SETTINGS.default_lot_size, 10_000)
        self.assertEqual(DEFAULT_SETTINGS.no_prize_caption, "Anda Belum Beruntung")

    def test_from_env_reads_overrides(self):
        settings = LotSettings.from_env(
            {
                "COUPONS_PER_BOX": "500",
                "DEFAULT_TOTAL_BOXES": "4",
                "COUPON_NUMBER_WIDTH": "6",
                "NO_PRIZE_CAPTION": "Try again",
                "CURRENCY_PREFIX": "IDR",
            }
        )
        self.assertEqual(settings.coupons_per_box, 500)
        self.assertEqual(settings.default_lot_size, 2_000)
        self.assertEqual(settings.coupon_number_width, 6)
        self.assertEqual(settings.no_prize_caption, "Try again")
        self.assertEqual(settings.currency_prefix, "IDR")

    def test_blank_values_fall_back_to_defaults(self):
        settings = LotSettings.from_env({"COUPONS_PER_BOX": " ", "NO_PRIZE_CAPTION": ""})
        self.assertEqual(settings, LotSettings())

    def test_invalid_values_rejected(self):
        with self.assertRaises(ValueError):
            LotSettings.from_env({"COUPONS_PER_BOX": "lots"})
        with self.assertRaises(ValueError):
            LotSettings.from_env({"DEFAULT_TOTAL_BOXES": "0"})


if __name__ == "__main__":
    unittest.main()
