import base64
import binascii
import logging
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)

POLICY_FILE_PATH = ".gitlab/semantic.yml"


class Policy(BaseModel):
    """Checks applied to a merge request, as read from `.gitlab/semantic.yml`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    enabled: bool = True
    validate_draft_mr: bool = Field(False, alias="validateDraftMr")
    title_only: bool = Field(False, alias="titleOnly")
    commits_only: bool = Field(False, alias="commitsOnly")
    title_and_commits: bool = Field(False, alias="titleAndCommits")
    any_commit: bool = Field(False, alias="anyCommit")
    scopes: Optional[List[str]] = None
    types: Optional[List[str]] = None
    allow_merge_commits: bool = Field(False, alias="allowMergeCommits")
    allow_revert_commits: bool = Field(False, alias="allowRevertCommits")
    add_merge_request_id: bool = Field(True, alias="addMergeRequestId")


DEFAULT_POLICY: Dict[str, Any] = Policy().model_dump(by_alias=True)


def parse_policy_file(content: str) -> Dict[str, Any]:
    """Decode the base64 YAML content returned by the repository files API."""
    try:
        document = yaml.safe_load(base64.b64decode(content).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable %s: %s", POLICY_FILE_PATH, e)
        return {}

    if document is None:
        return {}
    if not isinstance(document, dict):
        logger.warning("Ignoring %s: expected a mapping, got %s", POLICY_FILE_PATH, type(document).__name__)
        return {}
    return document


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def resolve_policy(override: Optional[Dict[str, Any]]) -> Tuple[Policy, bool]:
    """Merge a repository override over the defaults.

    Returns the policy and whether the defaults were used untouched, i.e.
    the repository has no (or an empty) policy file.
    """
    override = override or {}
    try:
        policy = Policy.model_validate(deep_merge(DEFAULT_POLICY, override))
    except PydanticValidationError as e:
        logger.warning("Ignoring invalid %s: %s", POLICY_FILE_PATH, e)
        return Policy(), True
    return policy, not override
