"""Command-line administration of users and roles.

Usage examples:
    identity-manager list-users --search example.com --sort email --desc
    identity-manager create-user --username dave --email dave@example.com --password ... --name "Dave"
    identity-manager set-roles <user-id> <role-id> <role-id>
    identity-manager set-claims <user-id> Email=dave@example.com GivenName=Dave
    identity-manager verify-audit

Store selection and credentials come from the same environment variables as
the web application (IDENTITY_STORE, KEYCLOAK_*, DEMO_MODE, ...).
"""
from __future__ import annotations
import argparse
import getpass
import json
import logging
import sys
from typing import Optional, Sequence

from identity_manager import audit
from identity_manager.bootstrap import build_store
from identity_manager.config import load_settings
from identity_manager.core.admin_service import AdminService, OperationContext
from identity_manager.core.errors import IdentityError
from identity_manager.core.query import PageRequest

logger = logging.getLogger(__name__)


def _claim_pair(raw: str) -> tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"expected Type=value, got '{raw}'")
    return key.strip(), value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="identity-manager", description="Identity store administration")
    parser.add_argument("--operator", default="cli", help="Operator name recorded in the audit trail")
    parser.add_argument("--correlation-id", default=None)
    sub = parser.add_subparsers(dest="cmd")

    for name in ("list-users", "list-roles"):
        sp = sub.add_parser(name)
        sp.add_argument("--search", default="")
        sp.add_argument("--sort", default=None, help="Field name to sort by")
        sp.add_argument("--desc", action="store_true")
        sp.add_argument("--start", type=int, default=0)
        sp.add_argument("--length", type=int, default=None)

    cu = sub.add_parser("create-user")
    cu.add_argument("--username", required=True)
    cu.add_argument("--email", required=True)
    cu.add_argument("--password", default=None, help="Prompted for when omitted")
    cu.add_argument("--name", default=None, help="Display name (Name claim)")

    cr = sub.add_parser("create-role")
    cr.add_argument("--name", required=True)
    cr.add_argument("--description", default=None)

    sr = sub.add_parser("set-roles", help="Replace a user's role memberships")
    sr.add_argument("user_id")
    sr.add_argument("role_ids", nargs="*")

    sc = sub.add_parser("set-claims", help="Replace the claims of a user (or role with --role)")
    sc.add_argument("principal_id")
    sc.add_argument("claims", nargs="*", type=_claim_pair, metavar="Type=value")
    sc.add_argument("--role", action="store_true", help="Target a role instead of a user")

    du = sub.add_parser("delete-user")
    du.add_argument("user_id")

    dr = sub.add_parser("delete-role")
    dr.add_argument("role_id")

    sub.add_parser("claim-types")
    sub.add_parser("verify-audit")
    return parser


def _print_json(value) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False, default=str))


def run(args: argparse.Namespace, service: AdminService, default_length: int = 10) -> int:
    """Execute one parsed command against ``service``; returns the exit code."""
    ctx = OperationContext(operator=args.operator, correlation_id=args.correlation_id)

    if args.cmd in ("list-users", "list-roles"):
        page = PageRequest(
            search=args.search,
            sort_column=args.sort,
            descending=args.desc,
            start=args.start,
            length=args.length or default_length,
        )
        lister = service.list_users if args.cmd == "list-users" else service.list_roles
        result = lister(page)
        _print_json({
            "recordsTotal": result.records_total,
            "recordsFiltered": result.records_filtered,
            "data": result.rows,
        })
    elif args.cmd == "create-user":
        password = args.password or getpass.getpass("Password: ")
        user = service.create_user(args.username, args.email, password, name=args.name, ctx=ctx)
        print(user.id)
    elif args.cmd == "create-role":
        role = service.create_role(args.name, description=args.description, ctx=ctx)
        print(role.id)
    elif args.cmd == "set-roles":
        user = service.store.get_user(args.user_id)
        if user is None:
            print("[set-roles] Error: User not found.", file=sys.stderr)
            return 1
        report = service.update_user(user.id, user.email, user.locked_out, role_ids=args.role_ids, ctx=ctx)
        print(f"[set-roles] added={sorted(report.roles.added)} removed={sorted(report.roles.removed)}")
    elif args.cmd == "set-claims":
        if args.role:
            role = service.store.get_role(args.principal_id)
            if role is None:
                print("[set-claims] Error: Role not found.", file=sys.stderr)
                return 1
            report = service.update_role(role.id, role.name, claims=args.claims, ctx=ctx)
        else:
            user = service.store.get_user(args.principal_id)
            if user is None:
                print("[set-claims] Error: User not found.", file=sys.stderr)
                return 1
            report = service.update_user(user.id, user.email, user.locked_out, claims=args.claims, ctx=ctx)
        print(f"[set-claims] added={len(report.claims.added)} removed={len(report.claims.removed)}")
    elif args.cmd == "delete-user":
        service.delete_user(args.user_id, ctx=ctx)
    elif args.cmd == "delete-role":
        service.delete_role(args.role_id, ctx=ctx)
    elif args.cmd == "claim-types":
        for name in service.claim_type_names():
            print(name)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return

    cfg = load_settings()
    logging.basicConfig(level=cfg.log_level, format="%(levelname)s %(name)s: %(message)s")
    audit.configure(cfg.audit_log_dir, cfg.audit_log_signing_key)

    if args.cmd == "verify-audit":
        total, valid = audit.verify_audit_log()
        print(f"Audit log: {valid}/{total} events with valid signatures")
        sys.exit(0 if total == valid else 1)

    try:
        service = AdminService(
            build_store(cfg),
            search_match=cfg.search_match_mode,
            max_page_length=cfg.max_page_length,
        )
        code = run(args, service, cfg.default_page_length)
    except IdentityError as e:
        print(f"[{args.cmd}] Error: {e.detail}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
