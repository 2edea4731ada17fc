from fastapi import FastAPI, HTTPException, Request
from contextlib import asynccontextmanager
from pydantic import ValidationError
import hmac
import json
import logging
import uvicorn
from typing import Any, Awaitable, Callable, Dict, NoReturn, Optional

from config import Settings, load_settings
from errors import AuthError
from evaluator import evaluate, needs_commits, title_with_merge_request_id
from gitlab_api import GitLabClient
from models import CommitStatus, GitlabWebhookPayload
from policy import resolve_policy

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any], Settings, GitLabClient], Awaitable[Dict[str, Any]]]


def authenticate(token: Optional[str], event: Optional[str], secret: str) -> str:
    """Check the webhook headers and return the event type."""
    if not token or not hmac.compare_digest(token.encode("utf-8"), secret.encode("utf-8")):
        raise AuthError("No X-Gitlab-Token found on request or the token did not match")
    if not event:
        raise AuthError("No X-Gitlab-Event found on request")
    return event


async def handle_merge_request(body: Dict[str, Any], settings: Settings, gitlab: GitLabClient) -> Dict[str, Any]:
    try:
        payload = GitlabWebhookPayload.model_validate(body)
    except ValidationError as e:
        logger.error("Invalid merge_request payload: %s", e)
        raise HTTPException(status_code=400, detail="Invalid merge_request payload")

    project_id = payload.project.id
    mr = payload.object_attributes
    logger.info(
        "Received a merge_request event for %s with title: %s",
        payload.project.path_with_namespace or payload.project.name or project_id,
        mr.title,
    )

    override = await gitlab.fetch_policy(project_id, mr.source_branch)
    policy, is_default_policy = resolve_policy(override)
    logger.info("Policy for !%s: %s (default: %s)", mr.iid, policy.model_dump(by_alias=True), is_default_policy)

    detail = await gitlab.fetch_merge_request_detail(project_id, mr.iid)
    draft = detail.draft if detail else mr.draft
    work_in_progress = detail.work_in_progress if detail else mr.work_in_progress

    commits = []
    if needs_commits(policy, draft, work_in_progress):
        commits = await gitlab.fetch_merge_request_commits(project_id, mr.iid)

    result = evaluate(mr.title, commits, policy, is_default_policy, draft, work_in_progress)
    logger.info(
        "hasSemanticTitle=%s hasSemanticCommits=%s commits=%s nonMergeCommits=%s",
        result.has_semantic_title,
        result.has_semantic_commits,
        commits,
        result.non_merge_commits,
    )

    await gitlab.post_status(
        project_id,
        mr.iid,
        CommitStatus(
            state=result.state,
            description=result.description,
            context=settings.status_context,
            target_url=settings.status_target_url,
        ),
    )

    new_title = title_with_merge_request_id(mr.title, mr.iid, policy)
    if new_title is not None:
        await gitlab.rename_merge_request_title(project_id, mr.iid, new_title)

    logger.info("Semantic Merge Request %s with message: %s", result.state, result.description)
    return {"ok": True, "state": result.state, "description": result.description}


HANDLERS: Dict[str, Handler] = {
    "merge_request": handle_merge_request,
}


def create_app(settings: Settings, gitlab: Optional[GitLabClient] = None) -> FastAPI:
    owns_client = gitlab is None
    client = gitlab or GitLabClient(settings.gitlab_api_base_url, settings.gitlab_token)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_client:
            await client.aclose()

    app = FastAPI(lifespan=lifespan)

    def reject(message: str) -> NoReturn:
        logger.error("Rejected webhook: %s", message)
        raise HTTPException(status_code=400, detail=message)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"status": "ok", "gitlab_api_base_url": settings.gitlab_api_base_url}

    @app.post("/webhook/gitlab")
    async def gitlab_webhook(request: Request) -> Dict[str, Any]:
        try:
            authenticate(
                request.headers.get("X-Gitlab-Token"),
                request.headers.get("X-Gitlab-Event"),
                settings.webhook_secret,
            )
        except AuthError as e:
            reject(str(e))

        try:
            body = json.loads(await request.body())
        except ValueError as e:
            reject(f"Invalid JSON body: {e}")
        if not isinstance(body, dict):
            reject("Expected a JSON object")

        kind = body.get("object_kind")
        if not isinstance(kind, str):
            reject("Missing object_kind")
        handler = HANDLERS.get(kind)
        if handler is None:
            return {"status": "ignored", "reason": f"unsupported event {kind}"}
        return await handler(body, settings, client)

    return app


def main() -> None:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
