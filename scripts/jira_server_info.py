#!/usr/bin/env python3
"""Jira Server connection check CLI.

Connects to the configured self-hosted Jira instance, detects its version and
capabilities, negotiates authentication and optionally discovers the custom
field mapping of a project.

Usage:
    jira_server_info.py                    # Version, capabilities, auth method
    jira_server_info.py --project PROJ     # Also discover PROJ's custom fields
    jira_server_info.py --json             # Machine-readable output

Exit codes:
    0: Connected and authenticated
    1: Not configured, unreachable or authentication failed
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from devbuddy.config import get_config
from devbuddy.connectors.jira.factory import create_ticket_client
from devbuddy.secrets import EnvSecretStore


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Check connectivity to a self-hosted Jira instance",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                           # Show version, capabilities and auth method
  %(prog)s --project PROJ            # Also show PROJ's epic/points/sprint fields
  %(prog)s --json                    # Print a JSON report

Configuration:
  Set credentials in .env or the environment:
    JIRA_TYPE=server
    JIRA_SERVER_BASE_URL=https://jira.company.com
    JIRA_SERVER_USERNAME=jdoe
    JIRA_SERVER_PASSWORD=password-or-personal-access-token
        """,
    )
    parser.add_argument(
        "--project",
        type=str,
        metavar="KEY",
        help="Discover the custom field mapping of a project (e.g., PROJ)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON",
    )

    args = parser.parse_args()

    try:
        config = get_config()
    except Exception as e:
        print(f"Error: Failed to load configuration: {e}", file=sys.stderr)
        sys.exit(1)

    if not config.is_server:
        print("Error: JIRA_TYPE is not 'server'.", file=sys.stderr)
        print("", file=sys.stderr)
        print("To enable:", file=sys.stderr)
        print("  1. Set JIRA_TYPE=server in .env", file=sys.stderr)
        print("  2. Configure JIRA_SERVER_BASE_URL, JIRA_SERVER_USERNAME", file=sys.stderr)
        print("     and JIRA_SERVER_PASSWORD", file=sys.stderr)
        sys.exit(1)

    try:
        ok = asyncio.run(run_check(args, config))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(0 if ok else 1)


async def run_check(args, config) -> bool:
    """Connect, print the report, and return True when authenticated.

    Args:
        args: Parsed command-line arguments
        config: DevBuddyConfig instance
    """
    client = await create_ticket_client(config, EnvSecretStore())
    if client is None:
        print("Error: Jira Server is not configured.", file=sys.stderr)
        return False

    async with client:
        result = await client.test_connection()
        report = {
            "base_url": client.base_url,
            "connection": result,
            "server_info": None,
            "capabilities": client.capabilities.as_dict() if client.capabilities else None,
            "warnings": client.warnings,
            "field_mapping": None,
        }
        if client.server_info is not None:
            report["server_info"] = {
                "version": client.server_info.version,
                "build_number": client.server_info.build_number,
                "deployment_type": client.server_info.deployment_type,
                "server_title": client.server_info.server_title,
            }
        if args.project and result["success"]:
            mapping = await client.get_field_mapping(args.project)
            report["field_mapping"] = mapping.as_dict()

    if args.json:
        print(json.dumps(report, indent=2))
    else:
        print_report(report)
    return bool(result["success"])


def print_report(report: dict) -> None:
    connection = report["connection"]
    print(f"Jira Server: {report['base_url']}")
    print("=" * 60)
    if report["server_info"]:
        info = report["server_info"]
        print(f"  Version:      {info['version']} (build {info['build_number']})")
        print(f"  Deployment:   {info['deployment_type']}")
        if info["server_title"]:
            print(f"  Title:        {info['server_title']}")
    print(f"  Auth method:  {connection['auth_method']}")
    if connection["success"]:
        print(f"  User:         {connection['user']}")
    else:
        print(f"  Error:        {connection['error']}")

    if report["capabilities"]:
        print()
        print("Capabilities:")
        for name, enabled in report["capabilities"].items():
            print(f"  {'✓' if enabled else '✗'} {name}")

    if report["field_mapping"] is not None:
        print()
        print("Field mapping:")
        for concept, field_id in report["field_mapping"].items():
            print(f"  {concept:<14} {field_id or '(not found)'}")

    for warning in report["warnings"]:
        print()
        print(f"Warning: {warning}")


if __name__ == "__main__":
    main()
