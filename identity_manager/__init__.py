"""Identity Manager: admin console core for accounts, roles and claims.

To use the Flask app:
    from identity_manager.flask_app import create_app

To use the admin service directly:
    from identity_manager.core.admin_service import AdminService
    from identity_manager.core.memory_store import InMemoryIdentityStore
"""
# Note: flask_app is not imported here; it builds an app instance at import time
