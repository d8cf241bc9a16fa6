from .enums import PaymentStatus, PaymentMethod, TransactionStatus, OrderStatus, NotificationType  # noqa: F401
from .user import User  # noqa: F401
from .order import Order  # noqa: F401
from .transaction import Transaction  # noqa: F401
from .notification import Notification  # noqa: F401

from .audit_log import AuditLog  # noqa: F401
