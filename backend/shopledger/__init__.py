# backend/shopledger/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate
from .policy import LedgerPolicy



def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Fail fast on a misspelled STOCK_POLICY / OVERPAYMENT_POLICY
    LedgerPolicy.from_config(app.config)

    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"):
        engine_options = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
        connect_args = dict(engine_options.get("connect_args") or {})
        connect_args.setdefault("timeout", app.config["SQLITE_BUSY_TIMEOUT"])
        engine_options["connect_args"] = connect_args
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.sales import sales_bp
    from .routes.products import products_bp
    from .routes.inventory import inventory_bp
    from .routes.credit import credit_bp
    from .routes.purchases import purchases_bp
    from .routes.dashboard import dashboard_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(credit_bp)
    app.register_blueprint(purchases_bp)
    app.register_blueprint(dashboard_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
