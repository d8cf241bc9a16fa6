import json
from datetime import datetime

from shantea.extensions import db
from shantea.models.enums import NotificationType


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)

    # NULL = admin notification
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    type = db.Column(db.Enum(NotificationType, native_enum=False, length=32), nullable=False, default=NotificationType.SYSTEM)
    title = db.Column(db.String(160), nullable=False, default="")
    message = db.Column(db.Text, nullable=False, default="")
    data = db.Column(db.Text, nullable=True)

    is_read = db.Column(db.Boolean, nullable=False, default=False, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    read_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self):
        try:
            data = json.loads(self.data) if self.data else None
        except ValueError:
            data = None
        return {
            "id": int(self.id),
            "userId": self.user_id,
            "type": self.type.value if self.type else None,
            "title": self.title,
            "message": self.message,
            "data": data,
            "isRead": bool(self.is_read),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "readAt": self.read_at.isoformat() if self.read_at else None,
        }
