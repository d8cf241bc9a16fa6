from datetime import datetime
from flask_login import UserMixin
from werkzeug.security import generate_password_hash

from shantea.extensions import db


class User(db.Model, UserMixin):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    full_name = db.Column(db.String(120), nullable=False, default="")
    email = db.Column(db.String(255), unique=True, index=True, nullable=False)

    password_hash = db.Column(db.String(255), nullable=False, default="")

    role = db.Column(db.String(32), nullable=False, default='customer')  # customer | admin

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @property
    def is_admin(self) -> bool:
        return (self.role or "").strip().lower() == "admin"

    def set_password(self, raw_password: str) -> None:
        self.password_hash = generate_password_hash(raw_password)
