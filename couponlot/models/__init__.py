from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .user import User  # noqa: F401
from .prize_config import PrizeConfig  # noqa: F401
from .batch import Batch  # noqa: F401
from .coupon import Coupon  # noqa: F401
from .qc_validation import QCValidation  # noqa: F401
from .production_log import ProductionLog  # noqa: F401

__all__ = [
    "Base",
    "User",
    "PrizeConfig",
    "Batch",
    "Coupon",
    "QCValidation",
    "ProductionLog",
]
