"""Provision an Entra ID lab environment through Microsoft Graph.

This module serves as a CLI wrapper around entralab.core.graph services.
"""
from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from entralab.config.settings import ConfigurationError, LabConfig, load_settings
from entralab.core.graph import (
    ConditionalAccessService,
    GraphError,
    GraphSession,
    GroupService,
    SUPPORTED_METHODS,
    UserService,
    invoke_graph_request,
    lab_name,
    mfa_policy_for_group,
)
from entralab.core.log import TRACE, configure_logging


def provision_lab(session: GraphSession, config: LabConfig) -> dict[str, str]:
    """Create the lab's base groups and its report-only MFA policy.

    Returns:
        Mapping of object name to object ID
    """
    groups = GroupService(session, config)
    created: dict[str, str] = {}

    wanted = [
        (lab_name(config, "Users"), "Lab users"),
        (lab_name(config, "Admins"), "Lab administrators"),
    ]
    if config.feature_global_secure_access:
        wanted.append((lab_name(config, "GSA-Users"), "Users assigned to Global Secure Access profiles"))
    if config.feature_identity_governance:
        wanted.append((lab_name(config, "IGA-Reviewers"), "Access review reviewers"))

    for name, description in wanted:
        created[name] = groups.create_group(name, description)

    policy_name = lab_name(config, "Require-MFA-Admins")
    conditions, grant_controls = mfa_policy_for_group(created[lab_name(config, "Admins")])
    created[policy_name] = ConditionalAccessService(session, config).create_policy(
        policy_name, conditions, grant_controls
    )
    return created


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Entra ID lab provisioning helper")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show progress messages")
    parser.add_argument("--debug", action="store_true", help="Show request/response detail")
    parser.add_argument("--trace", action="store_true", help="Show entry/exit of every Graph call")

    sub = parser.add_subparsers(dest="cmd")

    sub.add_parser("context", help="Show the tenant and app behind the current token")
    sub.add_parser("init", help="Create the lab's base groups and policies")

    su = sub.add_parser("users", help="List users as JSON lines")
    su.add_argument("--select", nargs="*", default=None)

    sd = sub.add_parser("disable-user")
    sd.add_argument("--upn", required=True)

    sg = sub.add_parser("delete-group")
    sg.add_argument("--name", required=True)

    sr = sub.add_parser("request", help="Send a raw Graph request")
    sr.add_argument("method", type=str.upper, choices=SUPPORTED_METHODS)
    sr.add_argument("uri")
    sr.add_argument("--body", default=None, help="JSON payload")
    sr.add_argument("--api-version", default=None)
    sr.add_argument("--all", action="store_true", help="Follow @odata.nextLink (GET only)")
    sr.add_argument("--expand", default=None, help="Return this response field instead of 'value'")

    return parser


def _log_level(args: argparse.Namespace) -> int:
    if args.trace:
        return TRACE
    if args.debug:
        return logging.DEBUG
    if args.verbose:
        return logging.INFO
    return logging.WARNING


def main(argv: list[str] | None = None) -> None:
    """Command-line entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return

    configure_logging(_log_level(args))

    body = None
    if args.cmd == "request" and args.body:
        try:
            body = json.loads(args.body)
        except ValueError as e:
            parser.error(f"--body is not valid JSON: {e}")

    try:
        config = load_settings()
        session = GraphSession(config)

        if args.cmd == "context":
            print(json.dumps(session.context(), indent=2))
        elif args.cmd == "init":
            for name, object_id in provision_lab(session, config).items():
                print(f"{name}\t{object_id}")
        elif args.cmd == "users":
            for user in UserService(session, config).list_users(args.select):
                print(json.dumps(user))
        elif args.cmd == "disable-user":
            UserService(session, config).disable_user(args.upn)
        elif args.cmd == "delete-group":
            groups = GroupService(session, config)
            groups.delete_group(groups.require_group(args.name)["id"])
        elif args.cmd == "request":
            result = invoke_graph_request(
                session,
                args.method,
                args.uri,
                body=body,
                api_version=args.api_version or config.api_version,
                expand=args.expand,
                page_size=config.page_size,
                fetch_all=args.all,
                host=config.graph_host,
                operation="cli",
            )
            print(json.dumps(result, indent=2))
        else:
            parser.print_help()
    except (GraphError, ConfigurationError) as e:
        print(f"[lab] Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
