"""Seed the development database with a demo company and super-user."""

import os

from voucherflow.core.security import issue_token
from voucherflow.db import get_engine, session_scope
from voucherflow.models.base import Base
from voucherflow.services.seed import DEFAULT_USER_EMAIL, seed_super_user


def main() -> None:
    """Create tables (if needed) and ensure a super-user exists."""

    engine = get_engine()
    Base.metadata.create_all(bind=engine)

    with session_scope() as session:
        email = os.environ.get("SEED_SUPER_USER_EMAIL", DEFAULT_USER_EMAIL)
        result = seed_super_user(session, user_email=email)

        print("✅ Development data ready!")
        company_status = "created" if result.company_created else "unchanged"
        if result.user_created:
            user_status = "created"
        elif result.user_updated:
            user_status = "updated"
        else:
            user_status = "unchanged"

        print(f"Company ({company_status}): {result.company.name} [id={result.company.id}]")
        print(
            f"User ({user_status}): {result.user.name} <{result.user.email}> "
            f"[id={result.user.id}, role={result.user.role}]"
        )
        print()
        print(f"Bearer token: {issue_token(result.user.id)}")


if __name__ == "__main__":
    main()
