# backend/storefront/__init__.py
import atexit

from flask import Flask, request

from .config import Config
from .extensions import db


def create_app(config_overrides: dict | None = None, gateway=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)

    # Import models so create_all sees their metadata
    from . import models  # noqa: F401

    with app.app_context():
        db.create_all()

    # Application-root stores
    from .context import StorefrontServices, init_services
    from .services.cart_service import Cart
    from .services.gateway_service import MarketplaceGateway
    from .services.notification_service import Notifier
    from .services.session_service import SessionStore
    from .services.storage_service import CredentialStorage

    owns_gateway = gateway is None
    if owns_gateway:
        gateway = MarketplaceGateway(
            app.config["API_BASE_URL"],
            timeout=app.config["API_TIMEOUT_SECONDS"],
        )
    notifier = Notifier()
    session = SessionStore(CredentialStorage(app.config["CREDENTIAL_STORAGE_KEY"]), gateway)
    services = StorefrontServices(
        session=session,
        cart=Cart(notifier),
        gateway=gateway,
        notifier=notifier,
    )
    init_services(app, services)
    if owns_gateway:
        # An injected gateway is closed by whoever built it
        atexit.register(services.close)

    if app.config["SESSION_BOOTSTRAP_ON_START"]:
        with app.app_context():
            session.bootstrap()

    # Register blueprints
    from .routes.system import system_bp
    from .routes.session import session_bp
    from .routes.events import events_bp
    from .routes.cart import cart_bp
    from .routes.orders import orders_bp
    from .routes.organizer import organizer_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(session_bp)
    app.register_blueprint(events_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(organizer_bp)
    app.register_blueprint(admin_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
