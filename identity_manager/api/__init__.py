"""HTTP layer: Flask blueprints over the admin service.

Blueprints:
    - users   : /api/users, /api/claim-types
    - roles   : /api/roles, /api/roles/options
    - health  : /health, /ready
    - docs    : /openapi.json

Handlers stay thin: parse the request, call AdminService, shape the response.
"""
