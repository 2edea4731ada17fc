from pydantic import BaseModel, ConfigDict
from typing import Optional


class Project(BaseModel):
    id: int
    name: Optional[str] = None
    path_with_namespace: Optional[str] = None


class MergeRequestAttributes(BaseModel):
    iid: int
    title: str
    source_branch: str
    url: Optional[str] = None
    draft: bool = False
    work_in_progress: bool = False


class GitlabWebhookPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    object_kind: str
    project: Project
    object_attributes: MergeRequestAttributes


class MergeRequestDetail(BaseModel):
    model_config = ConfigDict(extra="ignore")

    draft: bool = False
    work_in_progress: bool = False
    sha: Optional[str] = None


class CommitStatus(BaseModel):
    state: str
    description: str
    context: str
    target_url: Optional[str] = None
