import json
import unittest
from datetime import datetime, timedelta, timezone

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from couponlot.errors import InvalidTransitionError
from couponlot.models import (
    Base,
    Batch,
    Coupon,
    PrizeConfig,
    ProductionLog,
    QCValidation,
    User,
)
from couponlot.qc.details import VALIDATION_TYPES, ConsecutiveDetail


class DBTestCase(unittest.TestCase):
    def setUp(self):
        # In-memory SQLite for isolation
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()

    def _batch(self, session, number=1, **kwargs):
        batch = Batch(
            batch_number=number,
            operator_name="Budi",
            location="Jakarta",
            total_boxes=kwargs.pop("total_boxes", 10),
            **kwargs,
        )
        session.add(batch)
        session.flush()
        return batch

    def test_user_get_by_username_and_role_validation(self):
        with self.Session() as session:
            user = User(username="qc1", full_name="Siti", role="qc_staff", email=" QC1@Example.com ")
            session.add(user)
            session.commit()

            fetched = User.get_by_username(session, "qc1")
            self.assertIsNotNone(fetched)
            self.assertEqual(fetched.email, "qc1@example.com")
            self.assertEqual(fetched.to_json()["user_id"], user.id)
            self.assertIsNone(User.get_by_username(session, "nobody"))

        with self.assertRaises(ValueError):
            User(username="x", full_name="X", role="superuser")

    def test_prize_config_get_active_orders_by_amount(self):
        with self.Session() as session:
            session.add_all(
                [
                    PrizeConfig(prize_amount=10_000, total_coupons=100, coupons_per_box=1000),
                    PrizeConfig(prize_amount=50_000, total_coupons=10, coupons_per_box=1000),
                    PrizeConfig(
                        prize_amount=5_000, total_coupons=10, coupons_per_box=1000, is_active=False
                    ),
                ]
            )
            session.commit()

            active = PrizeConfig.get_active(session)
            self.assertEqual([c.prize_amount for c in active], [50_000, 10_000])
            self.assertEqual(active[0].to_json()["config_id"], active[0].id)

    def test_batch_status_machine(self):
        with self.Session() as session:
            batch = self._batch(session)
            self.assertEqual(batch.status, "pending")
            self.assertFalse(batch.can_transition_to("completed"))

            with self.assertRaises(InvalidTransitionError):
                batch.transition_to("qc_passed")

            batch.transition_to("in_progress")
            batch.transition_to("completed")
            batch.transition_to("qc_failed")
            self.assertFalse(batch.is_released)

            for target in ("pending", "completed", "qc_passed"):
                with self.assertRaises(InvalidTransitionError) as ctx:
                    batch.transition_to(target)
                self.assertEqual(ctx.exception.current, "qc_failed")

            with self.assertRaises(InvalidTransitionError):
                batch.transition_to("shipped")

    def test_batch_lookup_and_json(self):
        when = datetime(2026, 1, 1, 14, 0, tzinfo=timezone.utc)
        with self.Session() as session:
            batch = self._batch(session, number=77, production_date=when)
            session.commit()

            fetched = Batch.get_by_number(session, 77)
            self.assertEqual(fetched.id, batch.id)
            self.assertIsNone(Batch.get_by_number(session, 78))
            payload = fetched.to_json()
            self.assertEqual(payload["batch_id"], batch.id)
            self.assertEqual(payload["production_date"], "2026-01-01T14:00:00+00:00")
            self.assertEqual(payload["status"], "pending")

    def test_batch_number_is_unique(self):
        with self.Session() as session:
            self._batch(session, number=5)
            with self.assertRaises(IntegrityError):
                self._batch(session, number=5)

    def test_coupon_number_unique_per_batch(self):
        with self.Session() as session:
            first = self._batch(session, number=1)
            second = self._batch(session, number=2)
            session.add_all(
                [
                    Coupon(batch_id=first.id, coupon_number="00001", box_number=1),
                    Coupon(batch_id=second.id, coupon_number="00001", box_number=1),
                ]
            )
            session.flush()
            self.assertEqual(Coupon.count_for_batch(session, first.id), 1)

            session.add(Coupon(batch_id=first.id, coupon_number="00001", box_number=1))
            with self.assertRaises(IntegrityError):
                session.flush()

    def test_coupon_finders(self):
        with self.Session() as session:
            batch = self._batch(session, total_boxes=2)
            session.add_all(
                [
                    Coupon(batch_id=batch.id, coupon_number="00003", box_number=2),
                    Coupon(
                        batch_id=batch.id,
                        coupon_number="00001",
                        box_number=1,
                        prize_amount=50_000,
                        prize_description="Rp 50.000",
                        is_winner=True,
                    ),
                    Coupon(batch_id=batch.id, coupon_number="00002", box_number=1),
                ]
            )
            session.commit()

            numbers = [c.coupon_number for c in Coupon.get_for_batch(session, batch.id)]
            self.assertEqual(numbers, ["00001", "00002", "00003"])
            box_two = Coupon.get_for_batch(session, batch.id, box_number=2)
            self.assertEqual([c.coupon_number for c in box_two], ["00003"])

            winner = Coupon.get_by_number(session, batch.id, "00001")
            self.assertTrue(winner.is_winner)
            self.assertEqual(winner.to_json()["prize_description"], "Rp 50.000")
            self.assertEqual(Coupon.get_by_number(session, batch.id, "00004"), None)

    def test_qc_validation_details_and_latest(self):
        now = datetime.now(timezone.utc)
        with self.Session() as session:
            batch = self._batch(session)
            older = QCValidation(
                batch_id=batch.id,
                validation_type="consecutive_check",
                validation_status="fail",
                validation_details=json.dumps({"total_consecutive_issues": 2, "issues": []}),
                validated_by="QC",
                validated_at=now - timedelta(hours=1),
            )
            newer = QCValidation(
                batch_id=batch.id,
                validation_type="consecutive_check",
                validation_status="pass",
                validation_details=json.dumps({"total_consecutive_issues": 0, "issues": []}),
                validated_by="QC",
                validated_at=now,
            )
            session.add_all([older, newer])
            session.commit()

            rows = QCValidation.get_for_batch(session, batch.id)
            self.assertEqual([r.id for r in rows], [newer.id, older.id])
            latest = QCValidation.latest_for_batch(session, batch.id)
            self.assertEqual(latest["consecutive_check"].id, newer.id)
            self.assertEqual(newer.details, ConsecutiveDetail())
            self.assertEqual(newer.to_json()["qc_id"], newer.id)

    def test_qc_validation_accepts_every_audit_type(self):
        with self.Session() as session:
            batch = self._batch(session)
            session.add_all(
                [
                    QCValidation(
                        batch_id=batch.id,
                        validation_type=validation_type,
                        validation_status="pass",
                        validated_by="QC",
                    )
                    for validation_type in VALIDATION_TYPES
                ]
            )
            session.flush()
            stored = {row.validation_type for row in QCValidation.get_for_batch(session, batch.id)}
            self.assertEqual(stored, set(VALIDATION_TYPES))

    def test_qc_validation_rejects_unknown_type(self):
        with self.Session() as session:
            batch = self._batch(session)
            session.add(
                QCValidation(
                    batch_id=batch.id,
                    validation_type="vibes_check",
                    validation_status="pass",
                    validated_by="QC",
                )
            )
            with self.assertRaises(IntegrityError):
                session.flush()

    def test_production_log_metadata_roundtrip(self):
        with self.Session() as session:
            batch = self._batch(session)
            session.add_all(
                [
                    ProductionLog(
                        batch_id=batch.id,
                        action_type="coupons_generated",
                        operator_name="Budi",
                        location="Jakarta",
                        meta={"total_coupons": 10_000},
                    ),
                    ProductionLog(
                        batch_id=batch.id,
                        action_type="printed",
                        operator_name="Budi",
                        location="Jakarta",
                    ),
                ]
            )
            session.commit()

            logs = ProductionLog.get_for_batch(session, batch.id, action_type="coupons_generated")
            self.assertEqual(len(logs), 1)
            self.assertEqual(logs[0].to_json()["metadata"], {"total_coupons": 10_000})
            self.assertEqual(len(ProductionLog.get_for_batch(session, batch.id)), 2)


if __name__ == "__main__":
    unittest.main()
