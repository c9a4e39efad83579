import logging
import os
from typing import Optional

from dotenv import load_dotenv
from flask import Flask
from prometheus_client import CollectorRegistry
from prometheus_flask_exporter import PrometheusMetrics

from pharmacy_pos import __version__
from pharmacy_pos.controllers.helpers import SETTINGS_KEY
from pharmacy_pos.core.api_utils import register_error_handlers
from pharmacy_pos.core.config import Settings, load_settings, log_settings
from pharmacy_pos.core.limiter_config import limiter
from pharmacy_pos.core.logging_config import setup_logging
from pharmacy_pos.db.session import EXTENSION_KEY, Database

logger = logging.getLogger(__name__)


def _init_sentry(settings: Settings) -> None:
    if not settings.sentry_dsn:
        logger.info(
            "Sentry not initialized (SENTRY_DSN not set)",
            extra={"context": {"environment": settings.environment}},
        )
        return

    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=os.getenv("GIT_SHA", __version__),
        integrations=[FlaskIntegration(), SqlalchemyIntegration()],
        traces_sample_rate=0.1,
        send_default_pii=False,
    )
    logger.info(
        "Sentry initialized",
        extra={"context": {"environment": settings.environment}},
    )


def _register_blueprints(app: Flask) -> None:
    from pharmacy_pos.controllers.catalog_controller import drugs_bp, stores_bp
    from pharmacy_pos.controllers.customer_controller import customers_bp
    from pharmacy_pos.controllers.health_controller import health_bp
    from pharmacy_pos.controllers.inventory_controller import inventory_bp
    from pharmacy_pos.controllers.prescription_controller import prescriptions_bp
    from pharmacy_pos.controllers.report_controller import reports_bp
    from pharmacy_pos.controllers.sales_controller import sales_bp
    from pharmacy_pos.controllers.user_controller import auth_bp, users_bp

    for blueprint in (
        health_bp,
        auth_bp,
        users_bp,
        drugs_bp,
        stores_bp,
        inventory_bp,
        customers_bp,
        prescriptions_bp,
        sales_bp,
        reports_bp,
    ):
        app.register_blueprint(blueprint)


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> Flask:
    """Application factory.

    Args:
        settings: resolved settings; read from the environment when omitted
        database: pre-built data-access handle (tests share one across apps);
            built from ``settings.database_url`` when omitted

    Returns:
        Configured Flask application with tables created.
    """
    if settings is None:
        # Only load from .env when DATABASE_URL is not already defined
        if not os.getenv("DATABASE_URL"):
            load_dotenv()
        settings = load_settings()

    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.secret_key
    app.config["JWT_SECRET_KEY"] = settings.jwt_secret_key
    app.config["TESTING"] = settings.testing
    app.config["JSON_SORT_KEYS"] = False
    app.config["RATELIMIT_ENABLED"] = settings.rate_limit_enabled
    app.config["RATELIMIT_STORAGE_URI"] = settings.limiter_storage_uri

    setup_logging(
        app=app,
        log_level=settings.log_level,
        enable_sql_echo=False,
        log_to_file=settings.log_to_file,
        use_json_format=settings.is_production,
        log_dir=settings.log_dir,
    )

    _init_sentry(settings)

    # Before the limiter so /metrics is not rate limited
    metrics = PrometheusMetrics(app, registry=CollectorRegistry())
    metrics.info(
        "app_info",
        "Application information",
        version=__version__,
        environment=settings.environment,
    )

    limiter.init_app(app)
    if not settings.rate_limit_enabled:
        logger.info(
            "Rate limiting disabled", extra={"context": {"testing": settings.testing}}
        )

    if settings.is_production:
        from flask_talisman import Talisman

        Talisman(
            app,
            content_security_policy={"default-src": ["'none'"]},
            force_https=True,
            strict_transport_security=True,
            strict_transport_security_max_age=63072000,
            strict_transport_security_include_subdomains=True,
            frame_options="DENY",
            referrer_policy="no-referrer",
        )

    if database is None:
        database = Database.from_settings(settings)
    app.extensions[EXTENSION_KEY] = database
    app.extensions[SETTINGS_KEY] = settings
    database.create_tables()

    _register_blueprints(app)
    register_error_handlers(app)

    log_settings(settings)
    logger.info(
        "Application created",
        extra={"context": {"version": __version__, "environment": settings.environment}},
    )
    return app
