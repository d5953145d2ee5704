from voucherflow.core.config import get_settings
from voucherflow.db import get_engine
from voucherflow.models import *  # noqa
from voucherflow.models.base import Base


def init_db():
    print(f"🚀 Connecting to {get_settings().database_url}")
    Base.metadata.create_all(bind=get_engine())
    print("✅ Tables created successfully!")


if __name__ == "__main__":
    init_db()
