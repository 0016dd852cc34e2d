"""Input validation for CLI arguments."""
import re
import sys

ENV_VAR_PATTERN = r'^[A-Za-z_][A-Za-z0-9_]*$'


def validate_secret_key(key: str) -> None:
    """
    Validate a secret key is usable.

    Bitwarden accepts any non-blank key, so only blank keys are rejected.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not key or key.strip() == "":
        print("Error: Secret key cannot be empty", file=sys.stderr)
        sys.exit(2)


def validate_pattern(pattern: str) -> None:
    """
    Validate a move pattern.

    An empty pattern could only ever match an empty key, which is almost
    certainly a quoting mistake in the caller's shell.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not pattern:
        print("Error: Pattern cannot be empty", file=sys.stderr)
        print("\nUse * as a wildcard, e.g. 'LMB_*' or '*metrics*'", file=sys.stderr)
        sys.exit(2)


def validate_project_name(name: str) -> None:
    if not name or name.strip() == "":
        print("Error: Project name cannot be empty", file=sys.stderr)
        sys.exit(2)


def validate_env_var_name(name: str) -> None:
    """
    Validate an environment variable name used as an injection target.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not re.match(ENV_VAR_PATTERN, name):
        print(f"Error: Invalid environment variable name '{name}'", file=sys.stderr)
        print("\nAllowed: letters, digits and underscores, not starting with a digit", file=sys.stderr)
        print("  ✓ DATABASE_URL", file=sys.stderr)
        print("  ✗ 1PASSWORD (starts with a digit)", file=sys.stderr)
        print("  ✗ API-KEY (contains hyphen)", file=sys.stderr)
        sys.exit(2)
