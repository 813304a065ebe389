# backend/shiftwatch/__init__.py
from flask import Flask, request
from sqlalchemy.exc import SQLAlchemyError

from .config import Config
from .extensions import db, migrate



def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.timekeeping import timekeeping_bp
    from .routes.shifts import shifts_bp
    from .routes.replacements import replacements_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(timekeeping_bp)
    app.register_blueprint(shifts_bp)
    app.register_blueprint(replacements_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type, X-Employee-Id, X-Reviewer-Id"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    # Break-warning timers live for the life of the process
    from .services.timer_session import TimerRegistry
    registry = TimerRegistry(app)

    if app.config.get("TIMER_RESTORE_ON_START"):
        with app.app_context():
            try:
                restored = registry.restore_all()
                app.logger.info("Restored timers for %d employee(s)", restored)
            except SQLAlchemyError:
                # Schema not created yet (fresh database, `flask db upgrade`)
                db.session.rollback()
                app.logger.warning("Timer restore skipped: store not ready")

    if app.config.get("WATCHDOG_ENABLED"):
        from .services.watchdog import EXTENSION_KEY, MissedShiftWatchdog
        watchdog = MissedShiftWatchdog(app)
        app.extensions[EXTENSION_KEY] = watchdog
        watchdog.start()

    return app
