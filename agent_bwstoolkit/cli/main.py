"""CLI entrypoint for agent-bwstoolkit."""
import sys
import json
import argparse
import logging
from pathlib import Path

from .validators import validate_pattern, validate_project_name, validate_secret_key

VERSION = "0.1.0"

# Configure logging to stderr
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


def _make_client():
    """Resolve settings once and bind a client to them."""
    from agent_bwstoolkit.secrets.domains.bws_client import BwsClient
    from agent_bwstoolkit.secrets.domains.config_loader import load_settings

    return BwsClient(load_settings())


def _announce_project(name, created):
    if created:
        print(f"Created project '{name}'", file=sys.stderr)


def cmd_version(args):
    """Show version information."""
    print(f"agent-bwstoolkit {VERSION}")


def cmd_config_set_path(args):
    """Set config file path preference."""
    from agent_bwstoolkit.secrets.domains.preferences import set_preference

    config_path = Path(args.path).resolve()

    if not config_path.exists():
        print(f"Error: Config file does not exist: {config_path}", file=sys.stderr)
        sys.exit(1)

    if not config_path.is_file():
        print(f"Error: Path is not a file: {config_path}", file=sys.stderr)
        sys.exit(1)

    set_preference("config_path", str(config_path))
    print(f"Config path set to: {config_path}")


def cmd_config_show(args):
    """Show current config file path."""
    from agent_bwstoolkit.secrets.domains.config_loader import default_config_path
    from agent_bwstoolkit.secrets.domains.preferences import get_preference

    config_path_pref = get_preference("config_path")

    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            print(f"Config path: {config_path}")
        else:
            print(f"Config path (from preference, but file not found): {config_path}")
        print("Source: preference")
    else:
        default_config = default_config_path()
        print(f"Config path: {default_config}")
        if default_config.exists():
            print("Source: default")
        else:
            print("Source: default (file not found)")


def cmd_config_clear(args):
    """Clear config path preference."""
    from agent_bwstoolkit.secrets.domains.config_loader import default_config_path
    from agent_bwstoolkit.secrets.domains.preferences import clear_preference

    clear_preference("config_path")
    print(f"Config path preference cleared. Will use default: {default_config_path()}")


def cmd_secrets_list(args, client):
    """List secrets with their project assignments."""
    from agent_bwstoolkit.secrets.workflows.secret_operations import list_secrets

    if args.project is not None:
        validate_project_name(args.project)
    rows = list_secrets(client, args.project)

    if args.json:
        output = [{"key": r.key, "project": r.project, "id": r.id} for r in rows]
        print(json.dumps(output, indent=2))
        return

    if not rows:
        print("(no secrets found)")
        return

    key_width = max(3, *(len(r.key) for r in rows))
    header = f"{'KEY'.ljust(key_width)}  PROJECT"
    print(header)
    print("-" * len(header))
    for r in rows:
        print(f"{r.key.ljust(key_width)}  {r.project or '(none)'}")


def cmd_secrets_get(args, client):
    """Print a secret value to stdout, without a trailing newline."""
    from agent_bwstoolkit.secrets.workflows.secret_operations import get_secret

    validate_secret_key(args.key)
    sys.stdout.write(get_secret(client, args.key))
    sys.stdout.flush()


def cmd_secrets_set(args, client):
    """Create or update a secret."""
    from agent_bwstoolkit.secrets.workflows.secret_operations import set_secret

    validate_secret_key(args.key)
    if args.project is not None:
        validate_project_name(args.project)
    result = set_secret(client, args.key, args.value, note=args.note, project_name=args.project)
    _announce_project(args.project, result.project_created)
    if result.created:
        print(f"Created secret '{args.key}'")
    else:
        print(f"Updated secret '{args.key}'")


def cmd_secrets_delete(args, client):
    """Delete a secret."""
    from agent_bwstoolkit.secrets.workflows.secret_operations import delete_secret

    validate_secret_key(args.key)
    delete_secret(client, args.key)
    print(f"Deleted secret '{args.key}'")


def report_move(result, project_name, out=None, err=None):
    """
    Print one line per moved secret plus a summary.

    Returns:
        Exit code: 0 if every secret moved, 1 otherwise
    """
    out = out or sys.stdout
    err = err or sys.stderr

    for outcome in result.outcomes:
        if outcome.ok:
            print(f"Moved '{outcome.item.key}' -> '{project_name}'", file=out)
        else:
            print(f"Error: Failed to move '{outcome.item.key}': {outcome.reason}", file=err)

    if len(result.outcomes) > 1:
        print(f"\nMoved {result.moved} of {len(result.outcomes)} secrets to '{project_name}'", file=out)

    return 1 if result.failed else 0


def cmd_secrets_move(args, client):
    """Move every secret matching a key or pattern to a project."""
    from agent_bwstoolkit.secrets.workflows.secret_operations import move_secrets

    validate_pattern(args.pattern)
    validate_project_name(args.project)
    result = move_secrets(client, args.pattern, args.project)
    _announce_project(args.project, result.project_created)
    sys.exit(report_move(result, args.project))


def cmd_projects_list(args, client):
    """List all projects."""
    from agent_bwstoolkit.secrets.workflows.secret_operations import list_projects

    names = list_projects(client)
    if not names:
        print("(no projects found)")
        return
    for name in names:
        print(name)


def cmd_projects_create(args, client):
    from agent_bwstoolkit.secrets.workflows.secret_operations import create_project

    validate_project_name(args.name)
    create_project(client, args.name)
    print(f"Created project '{args.name}'")


def cmd_projects_delete(args, client):
    from agent_bwstoolkit.secrets.workflows.secret_operations import delete_project

    validate_project_name(args.name)
    delete_project(client, args.name)
    print(f"Deleted project '{args.name}'")


SECRETS_COMMANDS = {
    "list": cmd_secrets_list,
    "get": cmd_secrets_get,
    "set": cmd_secrets_set,
    "delete": cmd_secrets_delete,
    "move": cmd_secrets_move,
}

PROJECTS_COMMANDS = {
    "list": cmd_projects_list,
    "create": cmd_projects_create,
    "delete": cmd_projects_delete,
}


def validate_args(args):
    """Run usage checks for a secrets/projects command before any settings load."""
    if args.command == "secrets":
        if args.secrets_command in ("get", "set", "delete"):
            validate_secret_key(args.key)
        if args.secrets_command == "set" and args.project is not None:
            validate_project_name(args.project)
        elif args.secrets_command == "move":
            validate_pattern(args.pattern)
            validate_project_name(args.project)
        elif args.secrets_command == "list" and args.project is not None:
            validate_project_name(args.project)
    elif args.command == "projects" and args.projects_command in ("create", "delete"):
        validate_project_name(args.name)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="bwstoolkit",
        description="Agent-BWStoolkit CLI - Bitwarden Secrets Manager toolkit",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (authentication, network, secret not found, failed moves, etc.)
  2 - Usage error (missing or invalid arguments)

Environment variables:
  BWS_ACCESS_TOKEN    - Machine account access token (overrides config file)
  BWS_ORGANIZATION_ID - Organization UUID (overrides config file)

Configuration:
  Default location: ~/.config/agent-bwstoolkit/config.yml
  Custom path: Set with 'bwstoolkit config set-path <path>'
  View current: Run 'bwstoolkit config show'

Pattern matching (secrets move):
  * is the only wildcard, matching is case-insensitive and covers the whole key.
  Examples: "LMB_*"  "*metrics*"  "*_URL"
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of agent-bwstoolkit"
    )

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Manage agent-bwstoolkit configuration"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    config_set_path_parser = config_subparsers.add_parser(
        "set-path",
        help="Set config file path",
        description="Store the absolute path to your config file in preferences.json"
    )
    config_set_path_parser.add_argument("path", help="Path to config file")

    config_subparsers.add_parser(
        "show",
        help="Show current config path",
        description="Display the current configuration file path and its source (preference or default)"
    )
    config_subparsers.add_parser(
        "clear",
        help="Clear config path preference",
        description="Remove the config path preference and fall back to the default location"
    )

    # secrets command
    secrets_parser = subparsers.add_parser(
        "secrets",
        help="Secret management operations",
        description="Manage secrets in Bitwarden Secrets Manager"
    )
    secrets_subparsers = secrets_parser.add_subparsers(dest="secrets_command")

    list_parser = secrets_subparsers.add_parser(
        "list",
        help="List secrets with project assignments",
        description="List all secrets, sorted by project then key"
    )
    list_parser.add_argument("--project", help="Only list secrets in this project")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON (key, project, id)")

    get_parser = secrets_subparsers.add_parser(
        "get",
        help="Print a secret value",
        description="Print the secret value to stdout with no trailing newline, for use in $(...)"
    )
    get_parser.add_argument("key", help="Secret key")

    set_parser = secrets_subparsers.add_parser(
        "set",
        help="Create or update a secret",
        description="""
Create the secret if it does not exist, otherwise update it.

On update, the existing note and project are kept unless --note or
--project is given. A project named with --project is created if needed.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    set_parser.add_argument("key", help="Secret key")
    set_parser.add_argument("value", help="Secret value")
    set_parser.add_argument("--note", help="Note/description (kept on update if omitted)")
    set_parser.add_argument("--project", help="Assign to this project (auto-created if needed)")

    delete_parser = secrets_subparsers.add_parser(
        "delete",
        help="Delete a secret",
        description="Delete a secret by key"
    )
    delete_parser.add_argument("key", help="Secret key")

    move_parser = secrets_subparsers.add_parser(
        "move",
        help="Move matching secrets to a project",
        description="""
Move one secret, or every secret matching a pattern, to a project.

The project is created if it does not exist. Updates run five at a time;
a failed update is reported and does not stop the rest. Exits 1 if any
secret failed to move.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    move_parser.add_argument("pattern", help="Secret key or pattern, e.g. 'LMB_*' or '*metrics*'")
    move_parser.add_argument("project", help="Target project name")

    # projects command
    projects_parser = subparsers.add_parser(
        "projects",
        help="Project management operations",
        description="Manage projects in Bitwarden Secrets Manager"
    )
    projects_subparsers = projects_parser.add_subparsers(dest="projects_command")

    projects_subparsers.add_parser("list", help="List all projects")
    projects_create_parser = projects_subparsers.add_parser("create", help="Create a project")
    projects_create_parser.add_argument("name", help="Project name")
    projects_delete_parser = projects_subparsers.add_parser("delete", help="Delete a project")
    projects_delete_parser.add_argument("name", help="Project name")

    return parser, config_parser, secrets_parser, projects_parser


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (authentication, network, secret not found, etc.)
        2 - Usage errors (invalid arguments)
    """
    parser, config_parser, secrets_parser, projects_parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(2)

    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "config":
            if args.config_command == "set-path":
                cmd_config_set_path(args)
            elif args.config_command == "show":
                cmd_config_show(args)
            elif args.config_command == "clear":
                cmd_config_clear(args)
            else:
                config_parser.print_help()
                sys.exit(2)
        elif args.command == "secrets":
            handler = SECRETS_COMMANDS.get(args.secrets_command)
            if handler is None:
                secrets_parser.print_help()
                sys.exit(2)
            validate_args(args)
            handler(args, _make_client())
        elif args.command == "projects":
            # Bare 'projects' lists them
            handler = PROJECTS_COMMANDS.get(args.projects_command or "list")
            validate_args(args)
            handler(args, _make_client())
        else:
            parser.print_help()
            sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
