# backend/pdv/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate



def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.operators import operators_bp
    from .routes.inventory import inventory_bp
    from .routes.sales import sales_bp
    from .routes.returns import returns_bp
    from .routes.registers import registers_bp
    from .routes.customers import customers_bp
    from .routes.suppliers import suppliers_bp
    from .routes.finance import finance_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(operators_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(returns_bp)
    app.register_blueprint(registers_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(finance_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
