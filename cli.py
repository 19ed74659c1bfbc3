import asyncio
import os
from typing import List, Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel

from config.logic import load_and_merge_configs, missing_settings
from config.models import Config
from core.contracts.models import Issue, PipelineOutcome, RepositoryRef
from core.pipeline import build_pipeline
from utils.errors import AIFixException
from utils.logger import setup_logger, logger

CLI_ISSUE_ID = "CLI-TEST"

ENV_HINTS = {
    "ANTHROPIC_API_KEY": "ANTHROPIC_API_KEY not set in .env",
    "GITHUB_TOKEN": "GITHUB_TOKEN not set in .env",
    "LINEAR_API_KEY": "LINEAR_API_KEY not set in .env",
    "GITHUB_REPOSITORY": "GITHUB_REPOSITORY not set in .env (format: owner/repo)",
}


def report_missing(console: Console, missing: List[str]) -> None:
    for name in missing:
        console.print(f"[bold red]Error:[/bold red] {ENV_HINTS[name]}")


def description_issue(description: str) -> Issue:
    """A local issue for a freeform description; it has no tracker counterpart."""
    return Issue(
        id=CLI_ISSUE_ID,
        title="Manual CLI Test",
        description=description,
        priority=1,
        labels=["ai-fix"],
        url="https://linear.app/test",
    )


async def run_fix(config: Config, repo_path: str, issue_id: Optional[str], description: Optional[str]) -> PipelineOutcome:
    """
    Builds the pipeline for the checkout at repo_path and runs it for one issue.
    With an issue id the issue is fetched from Linear and the outcome is commented back.
    """
    repo = RepositoryRef.parse(config.github.repository)
    pipeline = build_pipeline(config, repo, repo_path)
    try:
        if issue_id:
            issue = await pipeline.applier.tracker.get_issue(issue_id)
            return await pipeline.run(issue, notify=True)
        return await pipeline.run(description_issue(description), notify=False)
    finally:
        await pipeline.aclose()


def print_outcome(console: Console, outcome: PipelineOutcome) -> None:
    if outcome.success:
        files = "\n".join(f"  - {f}" for f in outcome.files)
        console.print(Panel(
            f"Branch: {outcome.branch}\nPR: {outcome.pr_url}\n\nFiles changed:\n{files}\n\nReasoning:\n{outcome.reasoning}",
            title="[bold green]✅ Success![/bold green]",
            border_style="green",
            expand=False,
        ))
    else:
        console.print(Panel(
            f"Error: {outcome.error}\n\nReasoning:\n{outcome.reasoning}",
            title="[bold red]❌ Failed to fix bug[/bold red]",
            border_style="red",
            expand=False,
        ))


@click.group()
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="启用详细日志记录以进行调试",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="同时把日志写入该文件",
)
@click.pass_context
def cli(ctx, verbose: bool, log_file: Optional[str]):
    """
    AI Bug Fixer: turns Linear issues into GitHub pull requests.
    """
    setup_logger(log_level="DEBUG" if verbose else "INFO", log_file=log_file)
    load_dotenv()
    ctx.obj = {'verbose': verbose}


@cli.command("fix")
@click.option("--issue", "issue_id", type=str, help="要修复的 Linear issue ID (例如 'LIN-123')")
@click.option("--description", type=str, help="直接给出的 bug 描述")
@click.option(
    "--repo-path",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    show_default=True,
    help="目标仓库的本地检出目录",
)
@click.option(
    "-c", "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="自定义配置文件的路径",
)
@click.pass_context
def fix(ctx, issue_id: Optional[str], description: Optional[str], repo_path: str, config_path: Optional[str]):
    """
    Fix a bug from a Linear issue or a freeform description.
    """
    console = Console()
    verbose = ctx.obj.get('verbose', False)

    if not issue_id and not description:
        console.print("Usage: aifix fix --issue LIN-123")
        console.print("   or: aifix fix --description \"Bug description\"")
        ctx.exit(1)

    try:
        config = load_and_merge_configs(custom_config_path=config_path)
    except AIFixException as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        ctx.exit(1)

    missing = missing_settings(config)
    if missing:
        report_missing(console, missing)
        ctx.exit(1)

    console.print("🤖 AI Bug Fixer CLI\n")
    console.print(f"Issue: {issue_id or 'Manual CLI Test'}")
    if description:
        console.print(f"Description: {description}\n")

    try:
        with console.status("[bold green]Analyzing and fixing bug...[/bold green]"):
            outcome = asyncio.run(run_fix(config, os.path.abspath(repo_path), issue_id, description))
    except AIFixException as e:
        logger.opt(exception=verbose).error(f"发生已知错误: {e}")
        console.print(f"[bold red]Error:[/bold red] {e}")
        ctx.exit(1)
    except Exception as e:
        logger.opt(exception=True).error(f"发生未知错误: {e}")
        console.print(f"[bold red]Fatal error:[/bold red] {e}")
        ctx.exit(1)

    print_outcome(console, outcome)
    if not outcome.success:
        ctx.exit(1)


@cli.command("serve")
@click.option("--host", type=str, default=None, help="监听地址 (默认取配置)")
@click.option("--port", type=int, default=None, help="监听端口 (默认取配置)")
@click.option(
    "-c", "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="自定义配置文件的路径",
)
@click.pass_context
def serve(ctx, host: Optional[str], port: Optional[int], config_path: Optional[str]):
    """
    Run the Linear webhook server.
    """
    import uvicorn

    from server.webhook import create_app

    console = Console()
    try:
        config = load_and_merge_configs(custom_config_path=config_path)
    except AIFixException as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        ctx.exit(1)

    # The webhook resolves repositories per issue, so only the API credentials are required.
    missing = missing_settings(config, ["ANTHROPIC_API_KEY", "GITHUB_TOKEN"])
    if missing:
        report_missing(console, missing)
        ctx.exit(1)

    uvicorn.run(
        create_app(config),
        host=host or config.server.host,
        port=port or config.server.port,
    )


def main() -> None:
    cli(prog_name="aifix")


if __name__ == "__main__":
    main()
