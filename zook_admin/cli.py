"""
Operator CLI for the Zook admin backend.
Create the schema and bootstrap the first super admin account.
"""

import getpass
import sys

from sqlalchemy import insert, select
from werkzeug.security import generate_password_hash

from zook_admin.config import ROLE_SUPER_ADMIN
from zook_admin.database import create_schema, init_engine
from zook_admin.schema import admins, new_id

USAGE = "usage: zook-admin {init-db|create-super-admin}"


def init_db(engine) -> None:
    create_schema(engine)


def create_super_admin(engine, username: str, password: str, email: str = None) -> str:
    """Insert a super admin row and return its id."""
    if len(password) < 8:
        raise ValueError("password must be at least 8 characters")
    with engine.begin() as conn:
        taken = conn.execute(select(admins.c.id).where(admins.c.username == username)).first()
        if taken:
            raise ValueError(f"username '{username}' already exists")
        admin_id = new_id()
        conn.execute(insert(admins).values(
            id=admin_id,
            username=username,
            password=generate_password_hash(password),
            email=email or None,
            role=ROLE_SUPER_ADMIN,
            is_active=True,
        ))
    return admin_id


def _prompt_super_admin(engine) -> int:
    try:
        username = input("Username: ").strip()
        email = input("Email (optional): ").strip()
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
    except (EOFError, KeyboardInterrupt):
        print("\nExiting.")
        return 1

    if not username:
        print("[ERROR] Username is required.", file=sys.stderr)
        return 1
    if password != confirm:
        print("[ERROR] Passwords do not match.", file=sys.stderr)
        return 1

    try:
        admin_id = create_super_admin(engine, username, password, email)
    except ValueError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    print(f"[init] Super admin '{username}' created ({admin_id})")
    return 0


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1 or args[0] not in {"init-db", "create-super-admin"}:
        print(USAGE, file=sys.stderr)
        return 2

    engine = init_engine()
    if args[0] == "init-db":
        init_db(engine)
        return 0
    return _prompt_super_admin(engine)


if __name__ == "__main__":
    sys.exit(main())
