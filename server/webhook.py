"""
Linear webhook handler.

Triggered when a Linear issue carrying the trigger label is created or
updated; runs the bug fix pipeline against the issue's GitHub repository.
"""
import asyncio
import hashlib
import hmac
from pathlib import Path
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from config.models import Config
from core.contracts.models import RepositoryRef
from core.integrations.linear import LinearWebhookPayload
from core.pipeline import BugFixPipeline, build_pipeline
from core.repository import resolve_repository
from utils.git import clone_or_pull
from utils.logger import logger

SIGNATURE_HEADER = "linear-signature"
PROCESSED_ACTIONS = ("create", "update")

CheckoutPreparer = Callable[[RepositoryRef], Path]
PipelineFactory = Callable[[RepositoryRef, Path], BugFixPipeline]


def verify_signature(body: bytes, signature: Optional[str], secret: Optional[str]) -> bool:
    """
    Verifies the HMAC-SHA256 signature Linear sends over the raw body.
    Without a configured secret, verification is skipped.
    """
    if not secret:
        logger.warning("LINEAR_WEBHOOK_SECRET not set - skipping signature verification")
        return True
    if not signature:
        return False
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


def should_process(payload: LinearWebhookPayload, trigger_label: str) -> bool:
    """
    Whether the event is an issue create/update carrying the trigger label.
    Events of other types (comments, reactions, projects...) never are.
    """
    if payload.type != "Issue" or payload.action not in PROCESSED_ACTIONS:
        return False
    labels = payload.data.get("labels") or []
    return any(
        isinstance(label, dict) and str(label.get("name", "")).lower() == trigger_label.lower()
        for label in labels
    )


def checkout_path_for(config: Config, repo: RepositoryRef) -> Path:
    return Path(config.workspace.checkout_root) / f"{repo.owner}-{repo.name}"


def create_app(
    config: Config,
    prepare_checkout: Optional[CheckoutPreparer] = None,
    pipeline_factory: Optional[PipelineFactory] = None,
) -> FastAPI:
    """
    Builds the webhook application.

    Args:
        config: The application configuration.
        prepare_checkout: Clones or updates a repository and returns its path.
            Defaults to a git clone under the configured checkout root.
        pipeline_factory: Builds the pipeline for a repository checkout.
    """

    def default_prepare_checkout(repo: RepositoryRef) -> Path:
        destination = checkout_path_for(config, repo)
        token = config.github.token
        auth = f"x-access-token:{token}@" if token else ""
        clone_or_pull(
            f"https://{auth}github.com/{repo.owner}/{repo.name}.git",
            destination,
            secret=token,
            base_branch=config.github.base_branch,
            remote=config.github.remote,
        )
        return destination

    def default_pipeline_factory(repo: RepositoryRef, checkout_path: Path) -> BugFixPipeline:
        return build_pipeline(config, repo, checkout_path)

    prepare = prepare_checkout or default_prepare_checkout
    make_pipeline = pipeline_factory or default_pipeline_factory
    trigger_label = config.linear.trigger_label

    app = FastAPI(title="AI Bug Fixer", description="Turns labeled Linear issues into GitHub pull requests")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.api_route(config.server.webhook_path, methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    async def webhook(request: Request):
        if request.method != "POST":
            return JSONResponse(status_code=405, content={"error": "Method not allowed"})

        try:
            logger.info("Received Linear webhook")
            body = await request.body()

            if not verify_signature(body, request.headers.get(SIGNATURE_HEADER), config.linear.webhook_secret):
                logger.error("Invalid webhook signature")
                return JSONResponse(status_code=401, content={"error": "Invalid signature"})

            try:
                payload = LinearWebhookPayload.model_validate_json(body)
            except ValidationError as e:
                logger.error(f"Invalid Linear webhook payload: {e}")
                return JSONResponse(status_code=400, content={"error": "Invalid Linear webhook payload"})

            if not should_process(payload, trigger_label):
                logger.info(f"Ignoring {payload.type} {payload.action} event (needs an Issue with the {trigger_label} label)")
                return JSONResponse(status_code=200, content={"message": f"Issue ignored (no {trigger_label} label)"})

            try:
                issue_data = payload.issue()
            except ValidationError as e:
                logger.error(f"Invalid Linear issue data: {e}")
                return JSONResponse(status_code=400, content={"error": "Invalid Linear webhook payload"})

            logger.info(f"Processing issue: {issue_data.title}")
            repo = resolve_repository(issue_data, config.repo_mapping, config.github.repository)
            if repo is None:
                logger.error("Could not extract repo info from issue")
                return JSONResponse(status_code=400, content={"error": "Could not determine GitHub repository"})

            # git clone/fetch blocks; keep it off the event loop.
            checkout_path = await asyncio.to_thread(prepare, repo)
            pipeline = make_pipeline(repo, checkout_path)
            try:
                outcome = await pipeline.run(issue_data.to_issue())
            finally:
                await pipeline.aclose()

            if outcome.success:
                logger.success(f"PR created: {outcome.pr_url}")
                return JSONResponse(
                    status_code=200,
                    content={"success": True, "pr": outcome.pr_url, "files": outcome.files},
                )

            logger.error(f"Failed to fix bug: {outcome.error}")
            return JSONResponse(status_code=200, content={"success": False, "error": outcome.error})
        except Exception as e:
            logger.exception(f"Webhook error: {e}")
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error", "message": str(e)},
            )

    return app
