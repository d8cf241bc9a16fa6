import os


def _normalize_database_url(url: str) -> str:
    # Render/Heroku sometimes provide postgres:// which SQLAlchemy expects as postgresql://
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def _int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    try:
        return int(raw) if raw else int(default)
    except ValueError:
        return int(default)


class Config:
    # Base directory of the backend (one level above this `shantea` package)
    BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
    INSTANCE_DIR = os.path.join(BACKEND_DIR, 'instance')

    SHANTEA_ENV = (os.getenv("SHANTEA_ENV", "dev") or "dev").strip().lower()
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    _default_sqlite_path = os.path.join(INSTANCE_DIR, 'shantea.db').replace('\\', '/')
    _db_url = os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URI") or f"sqlite:///{_default_sqlite_path}"
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(_db_url)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CORS: comma-separated origins for web builds (e.g. https://shantea.vn,https://admin.shantea.vn)
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")

    # SePay: webhook shared secret (IPN key) and user API token for polling
    SEPAY_API_KEY = (os.getenv("SEPAY_API_KEY") or "").strip()
    SEPAY_API_TOKEN = (os.getenv("SEPAY_API_TOKEN") or "").strip()
    SEPAY_API_URL = os.getenv("SEPAY_API_URL", "https://my.sepay.vn/userapi/transactions/list")
    SEPAY_TIMEOUT_SECONDS = _int_env("SEPAY_TIMEOUT_SECONDS", 15)

    # Receiving bank account (VietQR routing)
    BANK_BIN = os.getenv("BANK_BIN", "970415")  # VietinBank
    BANK_NAME = os.getenv("BANK_NAME", "VietinBank")
    BANK_ACCOUNT_NUMBER = os.getenv("BANK_ACCOUNT_NUMBER", "")
    BANK_ACCOUNT_NAME = os.getenv("BANK_ACCOUNT_NAME", "SHAN TEA")
    VIETQR_TEMPLATE = os.getenv("VIETQR_TEMPLATE", "compact2")

    # Reference prefix must be shared by the QR builder and the narration parser
    PAYMENT_REFERENCE_PREFIX = os.getenv("PAYMENT_REFERENCE_PREFIX", "DH")
    PAYMENT_SCHEME_TAG = os.getenv("PAYMENT_SCHEME_TAG", "SEVQR TKPLAM")
    PAYMENT_AMOUNT_TOLERANCE = _int_env("PAYMENT_AMOUNT_TOLERANCE", 1000)

    # Realtime
    SSE_KEEPALIVE_SECONDS = _int_env("SSE_KEEPALIVE_SECONDS", 30)
    SSE_CLIENT_QUEUE_SIZE = _int_env("SSE_CLIENT_QUEUE_SIZE", 100)
    NOTIFY_QUEUE_SIZE = _int_env("NOTIFY_QUEUE_SIZE", 1000)
    NOTIFY_DISPATCHER_ENABLED = (os.getenv("NOTIFY_DISPATCHER_ENABLED", "1").strip() == "1")

    # Periodic bank sync (0 disables the job)
    BANK_SYNC_INTERVAL_MINUTES = _int_env("BANK_SYNC_INTERVAL_MINUTES", 0)
    BANK_SYNC_LIMIT = _int_env("BANK_SYNC_LIMIT", 20)

    # Notification retention (0 disables cleanup)
    NOTIFICATION_RETENTION_DAYS = _int_env("NOTIFICATION_RETENTION_DAYS", 30)
    NOTIFICATION_CLEANUP_INTERVAL_HOURS = _int_env("NOTIFICATION_CLEANUP_INTERVAL_HOURS", 24)
