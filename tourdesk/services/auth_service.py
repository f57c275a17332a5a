from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from tourdesk.errors import AppError, ValidationError
from tourdesk.extensions import bcrypt, db
from tourdesk.models import User

STAFF_ROLES = {"admin", "staff"}


class AuthService:
    @staticmethod
    def register_user(full_name, email, password, role, phone=""):
        if role not in STAFF_ROLES:
            raise ValidationError("Invalid role.", field="role")

        normalized_email = (email or "").strip().lower()
        if not (full_name or "").strip() or not normalized_email or not password:
            raise ValidationError("Name, email, and password are required.")
        if len(password) < 8:
            raise ValidationError("Password must be at least 8 characters.", field="password")

        if User.query.filter_by(email=normalized_email).first():
            raise AppError("Email already registered.", 409)

        user = User(
            full_name=full_name.strip(),
            email=normalized_email,
            phone="".join(ch for ch in (phone or "") if ch.isdigit() or ch == "+"),
            role=role,
            password_hash=bcrypt.generate_password_hash(password).decode("utf-8"),
        )
        try:
            db.session.add(user)
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise AppError("Email already registered.", 409) from exc
        return user

    @staticmethod
    def authenticate_user(email, password):
        user = User.query.filter_by(email=(email or "").strip().lower()).first()
        if not user:
            raise AppError("Invalid credentials.", 401)

        try:
            is_valid = bcrypt.check_password_hash(user.password_hash, password or "")
        except ValueError:
            is_valid = False

        if not is_valid:
            raise AppError("Invalid credentials.", 401)
        if not user.is_active_user:
            raise AppError("User account is inactive.", 403)
        user.last_login = datetime.now(timezone.utc)
        db.session.commit()
        return user
