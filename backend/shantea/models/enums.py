import enum


class PaymentStatus(str, enum.Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, enum.Enum):
    COD = "COD"
    SEPAY = "SEPAY"


class TransactionStatus(str, enum.Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class NotificationType(str, enum.Enum):
    ORDER_NEW = "ORDER_NEW"
    ORDER_STATUS = "ORDER_STATUS"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    SYSTEM = "SYSTEM"
