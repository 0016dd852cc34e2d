"""bws-mcp-wrapper: launch a command with Bitwarden secrets injected.

Usage:
    bws-mcp-wrapper --secret KEY --env VAR_NAME -- npx some-mcp-server
    bws-mcp-wrapper --secret KEY --arg --connection-string -- npx some-mcp-server
    bws-mcp-wrapper --secret K1 --env V1 --secret K2 --env V2 -- npx some-mcp-server

Secrets are fetched in one round trip. If any requested key is missing the
command is not launched. The wrapper exits with the child's exit code.
"""
import os
import sys
import logging
from typing import List, Sequence, Tuple

from agent_bwstoolkit.secrets.domains.models import Injection

from .validators import validate_env_var_name

USAGE = "Usage: bws-mcp-wrapper [--secret KEY (--env VAR | --arg FLAG)]... -- <command> [args...]"

MODE_FLAGS = {"--env": "env", "--arg": "arg"}

logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


def _usage_error(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    print(USAGE, file=sys.stderr)
    sys.exit(2)


def parse_injections(argv: Sequence[str]) -> Tuple[List[Injection], List[str]]:
    """
    Split wrapper arguments into injections and the command to launch.

    Raises:
        SystemExit with code 2 on any usage error
    """
    argv = list(argv)
    if "--" not in argv:
        _usage_error("Missing -- separator before the command")

    separator = argv.index("--")
    wrapper_args, command = argv[:separator], argv[separator + 1:]

    if not command:
        _usage_error("No command specified after --")

    injections: List[Injection] = []
    i = 0
    while i < len(wrapper_args):
        if wrapper_args[i] != "--secret":
            _usage_error(f"Unexpected argument: {wrapper_args[i]}")
        key, mode_flag, target = (wrapper_args[i + 1:i + 4] + [None, None, None])[:3]
        if not key or not mode_flag or not target:
            _usage_error("--secret requires a key followed by --env <VAR> or --arg <FLAG>")
        if mode_flag not in MODE_FLAGS:
            _usage_error(f"Expected --env or --arg after --secret, got: {mode_flag}")
        if mode_flag == "--env":
            validate_env_var_name(target)
        injections.append(Injection(key=key, mode=MODE_FLAGS[mode_flag], target=target))
        i += 4

    if not injections:
        _usage_error("No --secret injections specified. At least one --secret KEY (--env VAR | --arg FLAG) is required.")

    return injections, command


def main(argv=None):
    """Wrapper entrypoint.

    Exit codes:
        child's exit code - command launched
        1 - Runtime error (config, network, secret not found, launch failure)
        2 - Usage error
    """
    argv = sys.argv[1:] if argv is None else argv
    if argv and argv[0] in ("-h", "--help"):
        print(__doc__)
        sys.exit(0)

    injections, command = parse_injections(argv)

    try:
        from agent_bwstoolkit.secrets.domains.bws_client import BwsClient
        from agent_bwstoolkit.secrets.domains.config_loader import load_settings
        from agent_bwstoolkit.secrets.workflows.launch import launch, prepare_launch
        from agent_bwstoolkit.secrets.workflows.secret_operations import fetch_secret_values

        client = BwsClient(load_settings())
        values = fetch_secret_values(client, [inj.key for inj in injections])
        child_argv, env = prepare_launch(injections, values, command, os.environ)
        code = launch(child_argv, env)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    main()
