"""Core Business Logic Module

This module provides the core logic for identity administration,
independent of HTTP frameworks.

Module Structure:
    - fields.py         : Field registry (symbolic field name → typed accessor)
    - claim_types.py    : Claim type registry (symbolic name ↔ canonical URI)
    - query.py          : Dynamic query engine (filter / sort / page)
    - reconcile.py      : Desired vs actual association delta and apply
    - store.py          : IdentityStore port
    - memory_store.py   : In-process store (demo mode, tests)
    - keycloak/         : Keycloak Admin API store adapter
    - admin_service.py  : User / role administration used by API and CLI
    - errors.py         : Error taxonomy with HTTP statuses
    - validators.py     : Input validation

Usage Pattern:
    Import explicitly when needed:
        from identity_manager.core.admin_service import AdminService
        from identity_manager.core.query import PageRequest
"""
