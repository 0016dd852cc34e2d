"""Launch a child process with secrets injected as env vars or arguments."""
import logging
import subprocess
from typing import Dict, List, Mapping, Sequence, Tuple

from ..domains.errors import LaunchError
from ..domains.models import Injection

logger = logging.getLogger(__name__)


def prepare_launch(
    injections: Sequence[Injection],
    values: Mapping[str, str],
    command: Sequence[str],
    base_env: Mapping[str, str],
) -> Tuple[List[str], Dict[str, str]]:
    """
    Build the child's argv and environment.

    ``env`` injections set a variable on a copy of ``base_env``. ``arg``
    injections append ``FLAG value`` after the command's own arguments, in
    injection order.
    """
    env = dict(base_env)
    extra_args: List[str] = []
    for injection in injections:
        value = values[injection.key]
        if injection.mode == "env":
            env[injection.target] = value
        else:
            extra_args.extend([injection.target, value])
    return [*command, *extra_args], env


def launch(argv: Sequence[str], env: Mapping[str, str]) -> int:
    """
    Run ``argv`` with inherited stdio and wait for it.

    Returns:
        The child's exit code; 128 + N if it was killed by signal N

    Raises:
        LaunchError: If the command cannot be started
    """
    logger.debug(f"Launching {argv[0]} with {len(argv) - 1} argument(s)")
    try:
        result = subprocess.run(list(argv), env=dict(env), shell=False, check=False)
    except OSError as e:
        raise LaunchError(f"Failed to launch '{argv[0]}': {e}") from e

    if result.returncode < 0:
        return 128 - result.returncode
    return result.returncode
