"""Seed an administrator user."""

import os

from app import create_app
from models import db
from models.user import User

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "AdminPass123")
ADMIN_NAME = os.getenv("ADMIN_NAME", "Administrator")


def seed_admin(email: str = ADMIN_EMAIL, password: str = ADMIN_PASSWORD, name: str = ADMIN_NAME) -> str:
    """Create the admin account, or promote and reset an existing one."""

    email = email.strip().lower()
    admin = User.query.filter_by(email=email).first()
    if admin is None:
        admin = User(email=email, name=name, role="admin")
        db.session.add(admin)
        action = "created"
    else:
        admin.role = "admin"
        admin.touch()
        action = "updated"
    admin.set_password(password)
    db.session.commit()
    return action


def main() -> None:
    app = create_app()
    with app.app_context():
        action = seed_admin()
        print(f"Admin user {action}: {ADMIN_EMAIL}")


if __name__ == "__main__":
    main()
