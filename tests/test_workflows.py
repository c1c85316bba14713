import json
import unittest
from collections import Counter
from datetime import datetime, timezone

from sqlalchemy import create_engine, update
from sqlalchemy.orm import sessionmaker

from couponlot.config import LotSettings
from couponlot.errors import (
    AlreadyGeneratedError,
    BatchNotFoundError,
    ConfigError,
    InvalidTransitionError,
)
from couponlot.models import Base, Batch, Coupon, ProductionLog, QCValidation, User
from couponlot.reporting import (
    build_production_report,
    format_nominal,
    format_report_date,
)
from couponlot.workflows import (
    create_batch,
    create_prize_config,
    generate_coupons,
    get_validations_for_batch,
    log_production_action,
    run_quality_control,
)


class WorkflowTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()

    def _setup_lot(self, session, *, batch_number=1, total_boxes=10, prizes=((50_000, 10),)):
        for amount, total in prizes:
            create_prize_config(session, amount, total)
        return create_batch(
            session,
            batch_number,
            "Budi",
            "Jakarta",
            total_boxes=total_boxes,
            production_date=datetime(2026, 1, 1, 14, 0, tzinfo=timezone.utc),
        )


class TestSetupWorkflows(WorkflowTestCase):
    def test_create_batch_defaults_and_log(self):
        with self.Session.begin() as session:
            batch = create_batch(session, 3, "Budi", "Jakarta")
            self.assertEqual(batch.status, "pending")
            self.assertEqual(batch.total_boxes, 10)
            logs = ProductionLog.get_for_batch(session, batch.id)
            self.assertEqual([log.action_type for log in logs], ["batch_created"])

    def test_create_batch_uses_settings(self):
        with self.Session.begin() as session:
            batch = create_batch(
                session, 4, "Budi", "Jakarta", settings=LotSettings(default_total_boxes=3)
            )
            self.assertEqual(batch.total_boxes, 3)

    def test_create_batch_rejects_duplicates_and_bad_values(self):
        with self.Session.begin() as session:
            create_batch(session, 1, "Budi", "Jakarta")
            with self.assertRaises(ValueError):
                create_batch(session, 1, "Budi", "Jakarta")
            with self.assertRaises(ValueError):
                create_batch(session, 0, "Budi", "Jakarta")
            with self.assertRaises(ValueError):
                create_batch(session, 2, "Budi", "Jakarta", total_boxes=0)

    def test_create_prize_config_rejects_conflicts(self):
        with self.Session.begin() as session:
            create_prize_config(session, 50_000, 10)
            with self.assertRaises(ConfigError):
                create_prize_config(session, 50_000, 5)
            with self.assertRaises(ConfigError):
                create_prize_config(session, 10_000, 5, coupons_per_box=500)
            with self.assertRaises(ConfigError):
                create_prize_config(session, 10_000, 0)
            inactive = create_prize_config(session, 50_000, 5, is_active=False)
            self.assertFalse(inactive.is_active)

    def test_log_production_action_defaults_to_batch_operator(self):
        with self.Session.begin() as session:
            batch = create_batch(session, 9, "Budi", "Jakarta")
            entry = log_production_action(session, batch, "printed", meta={"boxes": [1, 2]})
            self.assertEqual(entry.operator_name, "Budi")
            self.assertEqual(entry.location, "Jakarta")
            self.assertEqual(entry.to_json()["metadata"], {"boxes": [1, 2]})


class TestGenerateCoupons(WorkflowTestCase):
    def test_generate_persists_lot_and_completes_batch(self):
        with self.Session.begin() as session:
            operator = User(username="op", full_name="Budi", role="operator")
            session.add(operator)
            session.flush()
            batch = self._setup_lot(session)

            result = generate_coupons(session, batch.id, generated_by=operator.id)

            self.assertEqual(
                result,
                {
                    "success": True,
                    "message": "Successfully generated 10000 coupons",
                    "totalCoupons": 10_000,
                    "batch_id": batch.id,
                },
            )
            self.assertEqual(batch.status, "completed")
            coupons = Coupon.get_for_batch(session, batch.id)
            self.assertEqual(len(coupons), 10_000)
            self.assertEqual(coupons[0].coupon_number, "00001")
            self.assertEqual(coupons[-1].coupon_number, "10000")
            self.assertTrue(all(c.generated_by == operator.id for c in coupons))
            winners = [c for c in coupons if c.is_winner]
            self.assertEqual(Counter(c.box_number for c in winners), {b: 1 for b in range(1, 11)})

            actions = [log.action_type for log in ProductionLog.get_for_batch(session, batch.id)]
            self.assertEqual(actions, ["batch_created", "coupons_generated"])

    def test_regeneration_rejected(self):
        with self.Session.begin() as session:
            batch = self._setup_lot(session, total_boxes=2)
            generate_coupons(session, batch.id)
            with self.assertRaises(AlreadyGeneratedError):
                generate_coupons(session, batch.id)
            self.assertEqual(Coupon.count_for_batch(session, batch.id), 2_000)

    def test_oversubscribed_configs_leave_batch_pending(self):
        with self.Session.begin() as session:
            batch = self._setup_lot(session, total_boxes=1, prizes=((50_000, 1_001),))
            with self.assertLogs("couponlot.workflows", level="ERROR"):
                with self.assertRaises(ConfigError):
                    generate_coupons(session, batch.id)
            self.assertEqual(batch.status, "pending")
            self.assertEqual(Coupon.count_for_batch(session, batch.id), 0)

    def test_unknown_batch(self):
        with self.Session.begin() as session:
            with self.assertRaises(BatchNotFoundError):
                generate_coupons(session, 404)


class TestQualityControl(WorkflowTestCase):
    def test_clean_lot_is_released(self):
        with self.Session.begin() as session:
            batch = self._setup_lot(session)
            generate_coupons(session, batch.id)
            report = run_quality_control(session, batch.id, "Siti")

            self.assertTrue(report.passed)
            self.assertEqual(batch.status, "qc_passed")
            self.assertTrue(batch.is_released)

            validations = get_validations_for_batch(session, batch.id)
            self.assertEqual(len(validations), 3)
            self.assertEqual({v["validation_status"] for v in validations}, {"pass"})
            self.assertEqual(
                {v["validation_type"] for v in validations},
                {"distribution_check", "box_composition", "consecutive_check"},
            )
            distribution = next(
                v for v in validations if v["validation_type"] == "distribution_check"
            )
            self.assertEqual(
                json.loads(distribution["validation_details"])["expected"], {"50000": 10}
            )

    def test_tampered_lot_fails_and_stays_failed(self):
        with self.Session.begin() as session:
            batch = self._setup_lot(session, total_boxes=2)
            generate_coupons(session, batch.id)
            zero = next(c for c in Coupon.get_for_batch(session, batch.id, box_number=1) if not c.is_winner)
            session.execute(
                update(Coupon)
                .where(Coupon.id == zero.id)
                .values(prize_amount=50_000, prize_description="Rp 50.000", is_winner=True)
            )

            report = run_quality_control(session, batch.id, "Siti")
            self.assertFalse(report.passed)
            self.assertEqual(batch.status, "qc_failed")
            self.assertEqual(
                QCValidation.latest_for_batch(session, batch.id)["distribution_check"].validation_status,
                "fail",
            )

            with self.assertLogs("couponlot.workflows", level="WARNING"):
                run_quality_control(session, batch.id, "Siti")
            self.assertEqual(batch.status, "qc_failed")
            self.assertEqual(len(get_validations_for_batch(session, batch.id)), 6)

    def test_qc_requires_generated_lot(self):
        with self.Session.begin() as session:
            batch = self._setup_lot(session)
            with self.assertRaises(InvalidTransitionError):
                run_quality_control(session, batch.id, "Siti")


class TestProductionReport(WorkflowTestCase):
    def test_report_payload_and_text(self):
        with self.Session.begin() as session:
            batch = self._setup_lot(session, total_boxes=2, prizes=((50_000, 2),))
            generate_coupons(session, batch.id)
            response = build_production_report(session, batch.batch_number)

        self.assertTrue(response["success"])
        data = response["data"]
        self.assertEqual(data["batch_number"], 1)
        self.assertEqual(data["operator_name"], "Budi")
        self.assertEqual(len(data["coupons"]), 2_000)
        self.assertEqual(data["coupons"][0]["coupon_number"], "00001")
        self.assertEqual(data["coupons"][0]["box_number"], 1)

        text = response["formattedReport"]
        self.assertIn("Production  : 01-Jan-2026 / 14:00", text)
        self.assertIn("Box 1", text)
        self.assertIn("Box 2", text)
        self.assertIn("Anda Belum Beruntung", text)
        self.assertIn("50.000  Rp 50.000", text)

    def test_unknown_batch_number(self):
        with self.Session() as session:
            with self.assertRaises(BatchNotFoundError):
                build_production_report(session, 999)

    def test_value_formatting(self):
        self.assertEqual(format_nominal(0), "0")
        self.assertEqual(format_nominal(1_000_000), "1.000.000")
        self.assertEqual(format_report_date("2026-03-05T09:07:00+00:00"), "05-Mar-2026 / 09:07")
        self.assertEqual(format_report_date(None), "")


if __name__ == "__main__":
    unittest.main()
