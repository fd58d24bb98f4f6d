"""Storefront marketplace Flask application."""

from __future__ import annotations

from typing import Optional

from flask import Flask

from .common.db.session import build_session_factory, init_db
from .common.services import (
    CartService,
    CouponService,
    CouponWalletService,
    PriceService,
    ShippingService,
)
from .common.services.logging import configure_logging, log_event
from .config import AppConfig, load_env
from .routes import api


def create_app(config: Optional[AppConfig] = None, session_factory=None) -> Flask:
    config = config or load_env()
    configure_logging(config.log_level)
    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.secret_key
    app.config["STOREFRONT_CONFIG"] = config

    if session_factory is None:
        session_factory = build_session_factory(config.database_url)
        init_db(session_factory.engine)

    components = {
        "cart_service": CartService(session_factory),
        "price_service": PriceService(session_factory),
        "shipping_service": ShippingService(session_factory),
        "coupon_service": CouponService(session_factory),
        "wallet_service": CouponWalletService(session_factory),
    }
    app.extensions["storefront_components"] = components

    app.register_blueprint(api.api_bp)
    log_event("info", "app.started", currency=config.currency)

    return app


def main() -> None:
    app = create_app()
    app.run(host="0.0.0.0", port=5000, debug=False)


if __name__ == "__main__":
    main()
