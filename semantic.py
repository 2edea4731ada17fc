import logging
from typing import Iterable, Optional, Sequence

from commits import check_commit, parse_commit
from errors import FormatError, ValidationError

logger = logging.getLogger(__name__)

# Types from the conventional-commit-types list
COMMIT_TYPES = (
    "feat",
    "fix",
    "docs",
    "style",
    "refactor",
    "perf",
    "test",
    "build",
    "ci",
    "chore",
    "revert",
)


def is_semantic_message(
    message: str,
    scopes: Optional[Sequence[str]] = None,
    types: Optional[Sequence[str]] = None,
    allow_merge_commits: bool = False,
    allow_revert_commits: bool = False,
) -> bool:
    """Check whether a commit message or MR title is semantic.

    Merge and revert commits can be let through without parsing. Messages
    that cannot be parsed are never semantic; no error reaches the caller.
    """
    if allow_merge_commits and message and message.startswith("Merge"):
        return True
    if allow_revert_commits and message and message.startswith("Revert"):
        return True

    try:
        commit = check_commit(parse_commit(message))
    except (FormatError, ValidationError) as e:
        logger.debug("Not a semantic message %r: %s", message, e)
        return False

    header = commit.header
    scope_is_valid = scopes is None or header.scope is None or header.scope in scopes
    allowed_types = COMMIT_TYPES if types is None else types
    return header.type in allowed_types and scope_is_valid


def commits_are_semantic(
    commits: Iterable[str],
    scopes: Optional[Sequence[str]] = None,
    types: Optional[Sequence[str]] = None,
    all_commits: bool = False,
    allow_merge_commits: bool = False,
    allow_revert_commits: bool = False,
) -> bool:
    combine = all if all_commits else any
    return combine(
        is_semantic_message(commit, scopes, types, allow_merge_commits, allow_revert_commits)
        for commit in commits
    )
