"""Key pattern matching and lookup indexes over list responses.

Patterns support ``*`` as the only wildcard. Everything else is literal,
matching is case-insensitive and must cover the whole key.

Indexes built from list responses resolve duplicates deterministically:

- name -> entry lookups (secrets by key, projects by name): first entry wins.
  Reads, updates and deletes all go through these so they agree on which
  duplicate they touch.
- id -> name display maps: last entry wins.
"""
import re
from typing import Dict, Iterable, List, Sequence

from .models import ProjectEntry, SecretEntry


def compile_pattern(pattern: str) -> "re.Pattern[str]":
    """Translate a ``*`` glob into a compiled, case-insensitive regex."""
    regex = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.compile(regex, re.IGNORECASE | re.DOTALL)


def glob_match(pattern: str, candidate: str) -> bool:
    """Return True if ``candidate`` matches ``pattern`` in full."""
    return compile_pattern(pattern).fullmatch(candidate) is not None


def filter_matching(secrets: Iterable[SecretEntry], pattern: str) -> List[SecretEntry]:
    """Secrets whose key matches ``pattern``, in response order."""
    compiled = compile_pattern(pattern)
    return [s for s in secrets if compiled.fullmatch(s.key) is not None]


def build_key_index(secrets: Iterable[SecretEntry]) -> Dict[str, SecretEntry]:
    """Build a key -> secret index (first match wins)."""
    index: Dict[str, SecretEntry] = {}
    for entry in secrets:
        if entry.key not in index:
            index[entry.key] = entry
    return index


def build_project_index(projects: Iterable[ProjectEntry]) -> Dict[str, ProjectEntry]:
    """Build a name -> project index (first match wins)."""
    index: Dict[str, ProjectEntry] = {}
    for entry in projects:
        if entry.name not in index:
            index[entry.name] = entry
    return index


def build_project_id_map(projects: Iterable[ProjectEntry]) -> Dict[str, str]:
    """Build a project id -> name map (last match wins)."""
    return {entry.id: entry.name for entry in projects}


def count_key(secrets: Sequence[SecretEntry], key: str) -> int:
    """Number of secrets sharing ``key``."""
    return sum(1 for s in secrets if s.key == key)
