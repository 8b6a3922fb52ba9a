from __future__ import annotations

import argparse
import asyncio
import signal
import sys
import uuid
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from .analyze import CancellationToken, TwoPassAnalyzer, batch_commits, get_stats, summarize
from .analyze.llm import LLMClient, UsageTracker
from .commits import commit_stats, filter_commits
from .config import GitAuditConfig, GitHubSettings
from .constants import ExitCode
from .errors import AnalysisCancelled, GitAuditError, GitHubError
from .github import GitHubClient
from .logging import AuditLogger
from .models import AggregateStats, Analysis, RepoRef, Summary
from .utils import json_dumps


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitaudit",
        description="Summarize a repository's commit history into analyzed units of work",
    )
    parser.add_argument("repo", nargs="?", help="Repository as OWNER/REPO")
    parser.add_argument(
        "--list",
        dest="list_repos",
        action="store_true",
        help="List the repositories the token can see and exit",
    )
    parser.add_argument("--since", help="Only commits after this ISO-8601 date")
    parser.add_argument("--until", help="Only commits before this ISO-8601 date")
    parser.add_argument("--author", help="Only commits by this GitHub login or email")
    parser.add_argument(
        "--no-detailed",
        dest="detailed",
        action="store_false",
        default=None,
        help="Skip the detailed second pass",
    )
    parser.add_argument("--time-window-hours", type=float, help="Max gap between commits in a batch")
    parser.add_argument("--max-batch-size", type=int, help="Max commits per batch")
    parser.add_argument("--concurrency", type=int, dest="max_concurrency", help="Concurrent LLM requests")
    parser.add_argument("--include-merges", action="store_true", help="Keep merge commits")
    parser.add_argument("--include-bots", action="store_true", help="Keep bot-authored commits")
    parser.add_argument("--json", action="store_true", help="Emit the report as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Emit debug logs")
    return parser


def _config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for name in ("time_window_hours", "max_batch_size", "max_concurrency", "detailed"):
        value = getattr(args, name)
        if value is not None:
            overrides[name] = value
    if args.include_merges:
        overrides["include_merge_commits"] = True
    if args.include_bots:
        overrides["include_bot_commits"] = True
    return overrides


def analysis_to_dict(analysis: Analysis) -> Dict[str, Any]:
    batch = analysis.batch
    return {
        "category": analysis.category,
        "description": analysis.description,
        "importance": analysis.importance,
        "commit_count": batch.commit_count,
        "start_date": batch.start_date,
        "end_date": batch.end_date,
        "commits": [c.sha for c in batch.commits],
        "detailed_analysis": analysis.detailed_analysis,
        "changes": analysis.changes.kind if analysis.changes else None,
        "error": analysis.error,
        "detailed_error": analysis.detailed_error,
    }


def render_report(
    repo: RepoRef,
    stats: AggregateStats,
    analyses: Sequence[Analysis],
    summary: Optional[Summary],
) -> str:
    lines: List[str] = [
        f"# {repo.full_name}",
        "",
        f"Batches: {stats.total_batches}  Commits: {stats.total_commits}  "
        f"Important: {stats.important_count}  Detailed: {stats.detailed_count}",
        "",
    ]
    for category, count in stats.by_category.items():
        if count:
            lines.append(f"- {category}: {count}")
    lines.append("")

    ranked = sorted(analyses, key=lambda a: a.importance, reverse=True)
    for analysis in ranked:
        marker = " (degraded)" if analysis.degraded else ""
        lines.append(f"[{analysis.importance}] {analysis.category}: {analysis.description}{marker}")
        if analysis.detailed_analysis:
            lines.append("")
            lines.append(analysis.detailed_analysis)
            lines.append("")

    if summary is not None:
        totals = summary.total_usage
        lines.extend(
            [
                "",
                summary.text,
                "",
                f"Tokens: {totals.total_tokens} over {totals.call_count} calls "
                f"(~${totals.cost_usd:.4f})",
            ]
        )
    return "\n".join(lines)


def render_repositories(login: str, repos: Sequence[Dict[str, Any]]) -> str:
    forked = sum(1 for r in repos if r.get("fork"))
    private = sum(1 for r in repos if r.get("private"))
    lines: List[str] = [
        f"# Repositories visible to {login}",
        "",
        f"Total: {len(repos)}  Owned: {len(repos) - forked}  Forked: {forked}  "
        f"Public: {len(repos) - private}  Private: {private}",
        "",
    ]
    for index, repo in enumerate(repos, start=1):
        name = repo.get("full_name") or repo.get("name") or "?"
        fork = " (fork)" if repo.get("fork") else ""
        stars = f" *{repo['stargazers_count']}" if repo.get("stargazers_count") else ""
        language = f" [{repo['language']}]" if repo.get("language") else ""
        lines.append(f"{index:3}. {name}{fork}{stars}{language}")
        visibility = "[Private]" if repo.get("private") else "[Public]"
        lines.append(f"     {visibility} {repo.get('html_url') or ''}".rstrip())
        description = repo.get("description") or ""
        if description:
            lines.append(f"     {description[:60]}{'...' if len(description) > 60 else ''}")
    return "\n".join(lines)


def _repository_to_dict(repo: Dict[str, Any]) -> Dict[str, Any]:
    keys = ("full_name", "private", "fork", "language", "stargazers_count", "html_url", "description")
    return {key: repo.get(key) for key in keys}


async def list_repositories(logger: AuditLogger, *, as_json: bool = False) -> int:
    """Print every repository the configured token can see."""
    try:
        settings = GitHubSettings()
    except ValidationError as exc:
        print(f"error: Configuration error: {exc}", file=sys.stderr)
        return ExitCode.ERROR

    github = GitHubClient.from_config(settings, logger)
    try:
        with logger.stage("list_repositories"):
            user = await asyncio.to_thread(github.get_authenticated_user)
            repos = await asyncio.to_thread(github.list_repositories)
    except GitHubError as exc:
        logger.error("run_failed", error=str(exc))
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code

    login = str(user.get("login") or "unknown")
    logger.info("repositories_listed", user=login, count=len(repos))
    if as_json:
        print(json_dumps({"user": login, "repositories": [_repository_to_dict(r) for r in repos]}))
    else:
        print(render_repositories(login, repos))
    return ExitCode.SUCCESS


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    return int(asyncio.run(async_main(argv)))


async def async_main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    run_id = str(uuid.uuid4())
    logger = AuditLogger(run_id, verbose=args.verbose)

    if args.list_repos:
        return await list_repositories(logger, as_json=args.json)
    if not args.repo:
        print("error: a repository (OWNER/REPO) is required unless --list is given", file=sys.stderr)
        return ExitCode.ERROR

    try:
        repo = RepoRef.parse(args.repo)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return ExitCode.ERROR
    logger = logger.bind(repo=repo.full_name)

    try:
        config = GitAuditConfig(**_config_overrides(args))
    except ValidationError as exc:
        print(f"error: Configuration error: {exc}", file=sys.stderr)
        return ExitCode.ERROR

    github = GitHubClient.from_config(config, logger)
    client = LLMClient.from_config(config, logger)
    usage = UsageTracker()
    cancel = CancellationToken()

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.cancel)
        handler_installed = True
    except (NotImplementedError, RuntimeError):
        handler_installed = False

    logger.info("gitaudit_starting", provider=config.llm_provider)
    analyses: List[Analysis] = []
    summary: Optional[Summary] = None
    exit_code = ExitCode.SUCCESS
    try:
        with logger.stage("fetch_commits"):
            commits = await github.list_commits(
                repo,
                author=args.author,
                since=args.since,
                until=args.until,
                cancel=cancel,
            )
            repo_meta = await github.get_repository_meta(repo)
        if cancel.cancelled:
            raise AnalysisCancelled("Interrupted while fetching commits")

        commits = filter_commits(
            commits,
            include_merge_commits=config.include_merge_commits,
            include_bot_commits=config.include_bot_commits,
        )
        logger.info("commits_filtered", **commit_stats(commits).to_dict())

        batches = batch_commits(commits, **config.to_batch_options())
        if not batches:
            print(f"No commits to analyze in {repo.full_name}")
            return ExitCode.SUCCESS

        analyzer = TwoPassAnalyzer(
            client,
            github,
            logger=logger,
            detailed=config.detailed,
            max_concurrency=config.max_concurrency,
        )
        run = await analyzer.run(batches, repo, usage=usage, cancel=cancel)
        analyses = run.analyses
        if run.cancelled:
            raise AnalysisCancelled("Interrupted before summary generation")

        with logger.stage("summarize"):
            summary = await summarize(analyses, repo_meta, client=client, usage=usage, logger=logger)
    except AnalysisCancelled as exc:
        logger.warning("run_cancelled", analyses=len(analyses))
        print(f"error: {exc}", file=sys.stderr)
        exit_code = exc.exit_code
    except GitAuditError as exc:
        logger.error("run_failed", error=str(exc))
        print(f"error: {exc}", file=sys.stderr)
        exit_code = exc.exit_code
    except Exception as exc:
        logger.error("run_failed", error=str(exc) or type(exc).__name__, error_type=type(exc).__name__)
        print(f"error: Unexpected failure: {exc!r}", file=sys.stderr)
        exit_code = ExitCode.ERROR
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)

    if analyses:
        stats = get_stats(analyses)
        if args.json:
            print(
                json_dumps(
                    {
                        "repo": repo.full_name,
                        "stats": stats.to_dict(),
                        "analyses": [analysis_to_dict(a) for a in analyses],
                        "summary": summary.text if summary else None,
                        "usage": usage.totals().to_dict(),
                    }
                )
            )
        else:
            print(render_report(repo, stats, analyses, summary))
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
