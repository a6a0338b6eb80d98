# backend/stockledger/__init__.py
from __future__ import annotations

import logging

from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.locations import locations_bp
    from .routes.products import products_bp
    from .routes.customers import customers_bp
    from .routes.series import series_bp
    from .routes.stock import stock_bp
    from .routes.moves import moves_bp
    from .routes.pos import pos_bp, web_sales_bp
    from .routes.deposits import deposits_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(locations_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(series_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(moves_bp)
    app.register_blueprint(pos_bp)
    app.register_blueprint(web_sales_bp)
    app.register_blueprint(deposits_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
