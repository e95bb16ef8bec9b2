"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints, middleware, and configuration.
"""
from __future__ import annotations
import ipaddress
import logging
from typing import Optional

from flask import Flask, abort, request
from werkzeug.middleware.proxy_fix import ProxyFix

from identity_manager import audit
from identity_manager.bootstrap import build_store
from identity_manager.config import AppConfig, load_settings
from identity_manager.core.admin_service import AdminService
from identity_manager.core.store import IdentityStore

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(config: Optional[AppConfig] = None, store: Optional[IdentityStore] = None) -> Flask:
    """Create and configure Flask application.

    Args:
        config: Settings; loaded from the environment when omitted
        store: Identity store; built from ``config.identity_store`` when omitted
    """
    cfg = config or load_settings()
    logging.basicConfig(level=cfg.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(cfg.log_level)

    app = Flask(__name__)
    app.config["APP_CONFIG"] = cfg
    app.config["SECRET_KEY"] = cfg.secret_key
    app.config["DEMO_MODE"] = cfg.demo_mode

    # Trust X-Forwarded-* headers from proxy (nginx)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    trusted_proxy_networks = _parse_networks(cfg.trusted_proxy_ips)
    app.config["TRUSTED_PROXY_NETWORKS"] = trusted_proxy_networks

    audit.configure(cfg.audit_log_dir, cfg.audit_log_signing_key)

    if store is None:
        store = build_store(cfg)
    app.extensions["identity_manager"] = AdminService(
        store,
        search_match=cfg.search_match_mode,
        max_page_length=cfg.max_page_length,
    )

    # Register blueprints
    from identity_manager.api import docs, errors, health, roles, users

    app.register_blueprint(health.bp)
    app.register_blueprint(users.bp, url_prefix="/api")
    app.register_blueprint(roles.bp, url_prefix="/api")
    app.register_blueprint(docs.bp)

    errors.register_error_handlers(app)
    _register_middleware(app, trusted_proxy_networks)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    print(f"[flask_app] Mode={mode_label}; store={type(store).__name__}")
    print("[flask_app] Admin API registered at /api")

    if cfg.demo_mode:
        print("[flask_app] WARNING: Demo mode active - do not deploy with demo credentials")

    return app


def _parse_networks(raw: str) -> list:
    networks = []
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        try:
            networks.append(ipaddress.ip_network(entry, strict=False))
        except ValueError:
            logger.warning("Ignoring invalid TRUSTED_PROXY_IPS entry: %s", entry)
    return networks


def _register_middleware(app: Flask, trusted_proxy_networks: list):
    """Register request/response hooks."""
    from identity_manager.api.context import CORRELATION_HEADER, correlation_id

    @app.before_request
    def enforce_proxy_headers() -> None:
        """Validate proxy headers from trusted sources only."""
        forwarded = any(name.startswith("X-Forwarded-") for name in request.headers.keys())
        original_remote = request.environ.get("werkzeug.proxy_fix.orig", {}).get("REMOTE_ADDR")
        if forwarded and original_remote:
            try:
                address = ipaddress.ip_address(original_remote)
                if not any(address in network for network in trusted_proxy_networks):
                    abort(400, description="Untrusted proxy")
            except ValueError:
                abort(400, description="Invalid proxy address")

        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for and "," in forwarded_for:
            abort(400, description="Multiple forwarded clients not permitted")

    @app.after_request
    def add_correlation_id(response):
        """Echo (or issue) the correlation id for tracing."""
        response.headers[CORRELATION_HEADER] = correlation_id()
        return response


# ─────────────────────────────────────────────────────────────────────────────
# Application Instance (for Gunicorn)
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
