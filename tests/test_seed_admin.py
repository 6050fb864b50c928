"""Tests for the admin seeding script."""

from models import db
from models.user import User
from scripts.seed_admin import seed_admin


def test_seed_admin_creates_then_promotes(app):
    with app.app_context():
        assert seed_admin("Root@Example.com", "FirstPass1", "Root") == "created"
        admin = User.query.filter_by(email="root@example.com").one()
        assert admin.role == "admin"
        assert admin.check_password("FirstPass1")

        admin.role = "user"
        db.session.commit()

        assert seed_admin("root@example.com", "SecondPass2") == "updated"
        admin = User.query.filter_by(email="root@example.com").one()
        assert admin.role == "admin"
        assert admin.check_password("SecondPass2")
