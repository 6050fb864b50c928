"""User model definition."""

from datetime import datetime, timezone

from werkzeug.security import check_password_hash, generate_password_hash

from . import db


USER_ROLES = ("user", "admin")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(db.Model):
    """Represents an account holder."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(
        db.String(32),
        nullable=False,
        default="user",
        server_default=db.text("'user'"),
    )
    created_at = db.Column(
        db.DateTime,
        nullable=False,
        default=_utcnow,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=db.func.now(),
    )

    def set_password(self, password: str) -> None:
        """Hash and store the password."""

        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""

        return check_password_hash(self.password_hash, password)

    def touch(self) -> None:
        """Refresh the update timestamp."""

        self.updated_at = _utcnow()

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email}>"

    def to_dict(self) -> dict:
        """Serialize the user without credential material."""

        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
