import os
from flask import Flask, jsonify
from sqlalchemy import text

from shantea.config import Config
from shantea.extensions import db, migrate, cors, login_manager
from shantea.realtime import init_realtime
from shantea.jobs.scheduler import start_scheduler
from shantea.segments.segment_payments import payments_bp
from shantea.segments.segment_sse import sse_bp
from shantea.segments.segment_notifications import notifications_bp


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    env = (app.config.get("SHANTEA_ENV") or "dev").strip().lower()

    # Production safety checks
    if env in ("prod", "production"):
        secret = (app.config.get("SECRET_KEY") or "").strip()
        if not secret or len(secret) < 16 or secret == "dev-secret":
            raise RuntimeError("SECRET_KEY must be set and at least 16 chars in production")
        if not (os.getenv("DATABASE_URL") or "").strip() and not (os.getenv("SQLALCHEMY_DATABASE_URI") or "").strip():
            raise RuntimeError("DATABASE_URL (or SQLALCHEMY_DATABASE_URI) must be set in production")
        if not app.config.get("SEPAY_API_KEY"):
            app.logger.warning("SEPAY_API_KEY is not set; webhook requests will not be authenticated")

    # Ensure instance dir exists for SQLite paths
    database_url = app.config["SQLALCHEMY_DATABASE_URI"]
    if database_url.startswith("sqlite:///") and database_url != "sqlite:///:memory:":
        os.makedirs(app.config.get("INSTANCE_DIR") or Config.INSTANCE_DIR, exist_ok=True)

    # CORS configuration
    cors_origins = (app.config.get("CORS_ORIGINS") or "").strip()
    if env in ("prod", "production"):
        origins = [o.strip() for o in cors_origins.split(",") if o.strip()]
    else:
        origins = ["*"] if not cors_origins else [o.strip() for o in cors_origins.split(",") if o.strip()]
    cors.init_app(app, resources={r"/api/*": {"origins": origins}})

    # Init extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    init_realtime(app)

    # Register API routes
    app.register_blueprint(payments_bp)
    app.register_blueprint(sse_bp)
    app.register_blueprint(notifications_bp)

    # Health check
    @app.get("/api/health")
    def health():
        db_state = "ok"
        try:
            db.session.execute(text("SELECT 1"))
        except Exception:
            db_state = "fail"
        return jsonify({
            "ok": True,
            "service": "shantea-backend",
            "env": env,
            "db": db_state,
        })

    if not app.testing:
        app.extensions["shantea.scheduler"] = start_scheduler(app)

    return app
