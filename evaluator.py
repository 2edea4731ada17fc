"""Decide whether a merge request is semantic under a given policy."""
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from policy import Policy
from semantic import commits_are_semantic, is_semantic_message

SUCCESS = "success"
FAILED = "failed"


class Evaluation(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_semantic: bool
    description: str
    has_semantic_title: bool = False
    has_semantic_commits: bool = False
    non_merge_commits: List[str] = []

    @property
    def state(self) -> str:
        return SUCCESS if self.is_semantic else FAILED


def skip_reason(policy: Policy, draft: bool = False, work_in_progress: bool = False) -> Optional[str]:
    """Return why the check is skipped for this MR, or None when it runs."""
    if not policy.enabled:
        return "skipped; check disabled in semantic.yml config"
    if not policy.validate_draft_mr:
        if draft:
            return "skipped; merge request is a draft"
        if work_in_progress:
            return "skipped; merge request is a work in progress"
    return None


def needs_commits(policy: Policy, draft: bool = False, work_in_progress: bool = False) -> bool:
    return skip_reason(policy, draft, work_in_progress) is None and not policy.title_only


def evaluate(
    title: str,
    commits: Sequence[str],
    policy: Policy,
    is_default_policy: bool,
    draft: bool = False,
    work_in_progress: bool = False,
) -> Evaluation:
    """Evaluate an MR title and its commits (oldest first) against a policy."""
    reason = skip_reason(policy, draft, work_in_progress)
    if reason is not None:
        return Evaluation(is_semantic=True, description=reason)

    has_semantic_title = is_semantic_message(title, policy.scopes, policy.types)
    has_semantic_commits = False
    non_merge_commits: List[str] = []

    if policy.title_only:
        is_semantic = has_semantic_title
    else:
        has_semantic_commits = commits_are_semantic(
            commits,
            policy.scopes,
            policy.types,
            all_commits=(policy.commits_only or policy.title_and_commits) and not policy.any_commit,
            allow_merge_commits=policy.allow_merge_commits,
            allow_revert_commits=policy.allow_revert_commits,
        )
        non_merge_commits = [commit for commit in commits if not commit.startswith("Merge")]

        if policy.commits_only:
            is_semantic = has_semantic_commits
        elif policy.title_and_commits:
            is_semantic = has_semantic_title and has_semantic_commits
        elif is_default_policy and len(non_merge_commits) == 1:
            # GitLab does not squash a single commit, so that commit is what lands.
            is_semantic = has_semantic_commits
        else:
            is_semantic = has_semantic_title or has_semantic_commits

    description = _describe(
        policy,
        is_semantic,
        has_semantic_title,
        has_semantic_commits,
        single_commit=is_default_policy and len(non_merge_commits) == 1,
    )
    return Evaluation(
        is_semantic=is_semantic,
        description=description,
        has_semantic_title=has_semantic_title,
        has_semantic_commits=has_semantic_commits,
        non_merge_commits=non_merge_commits,
    )


def _describe(
    policy: Policy,
    is_semantic: bool,
    has_semantic_title: bool,
    has_semantic_commits: bool,
    single_commit: bool,
) -> str:
    # Order matters, several conditions can hold at once.
    if not is_semantic and single_commit:
        return (
            "Merge request has only one non-merge commit and it's not semantic; "
            "add another commit before squashing"
        )
    if policy.title_and_commits:
        if is_semantic:
            return "ready to be merged, squashed or rebased"
        return "add a semantic commit and merge request title"
    if has_semantic_title and not policy.commits_only:
        return "ready to be squashed"
    if has_semantic_commits and not policy.title_only:
        return "ready to be merged or rebased"
    if policy.title_only:
        return "add a semantic merge request title"
    if policy.commits_only and policy.any_commit:
        return "add a semantic commit"
    if policy.commits_only:
        return "make sure every commit is semantic"
    return "add a semantic commit or merge request title"


def title_with_merge_request_id(title: str, mr_iid: int, policy: Policy) -> Optional[str]:
    """Return the title with ` (!<iid>)` appended, or None if no rename is needed."""
    suffix = f"(!{mr_iid})"
    if not policy.add_merge_request_id or title.strip().endswith(suffix):
        return None
    return f"{title} {suffix}"
