"""Gunicorn configuration file.

Secrets are read by identity_manager.config.settings from /run/secrets (Docker
secrets) with environment variable fallback; this file only tunes the server
and reports which secrets a worker will see.
"""
import os
from pathlib import Path

wsgi_app = "identity_manager.flask_app:app"
bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "30"))
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()


def post_fork(server, worker):
    """
    Called just after a worker has been forked.

    The in-memory store is per process: with IDENTITY_STORE=memory every
    worker holds its own copy of the data.
    """
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"
    store = os.environ.get("IDENTITY_STORE", "memory" if demo_mode else "keycloak")
    if store == "memory" and server.cfg.workers > 1:
        worker.log.warning("IDENTITY_STORE=memory with %s workers: data is not shared between workers", server.cfg.workers)

    secrets_dir = Path("/run/secrets")
    if secrets_dir.exists() and secrets_dir.is_dir():
        secret_files = list(secrets_dir.glob("*"))
        if secret_files:
            worker.log.info(f"Found {len(secret_files)} secrets in /run/secrets")
            return
    worker.log.info("No /run/secrets mount; using environment variables")
