import logging

from couponlot.config import LotSettings
from couponlot.db.engine import get_sessionmaker, make_engine
from couponlot.models import Base, User
from couponlot.workflows import (
    create_batch,
    create_prize_config,
    generate_coupons,
    run_quality_control,
)

# Prize table used on the production line: 10,000 coupons in 10 boxes.
DEV_PRIZE_TABLE = [
    (1_000_000, 10),
    (500_000, 20),
    (100_000, 100),
    (50_000, 500),
    (10_000, 1_000),
]


def main() -> None:
    """Reset the development database and seed a generated, validated batch."""
    logging.basicConfig(level=logging.INFO)
    settings = LotSettings.from_env()
    engine = make_engine()

    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    Session = get_sessionmaker(engine)

    with Session.begin() as session:
        admin = User(username="admin", email="admin@example.com", full_name="Admin", role="admin")
        operator = User(username="operator1", full_name="Budi Santoso", role="operator")
        qc = User(username="qc1", full_name="Siti Rahma", role="qc_staff")
        session.add_all([admin, operator, qc])
        session.flush()

        for amount, total in DEV_PRIZE_TABLE:
            create_prize_config(
                session,
                amount,
                total,
                settings.coupons_per_box,
                created_by=admin.id,
                settings=settings,
            )

        batch = create_batch(
            session,
            1,
            operator.full_name,
            "Jakarta",
            created_by=admin.id,
            operator_id=operator.id,
            settings=settings,
        )
        result = generate_coupons(session, batch.id, generated_by=operator.id, settings=settings)
        report = run_quality_control(
            session,
            batch.id,
            qc.full_name,
            validated_by_user_id=qc.id,
            settings=settings,
        )

    print(f"{result['message']}; batch {batch.batch_number} is {report.batch_status}.")


if __name__ == "__main__":
    main()
