from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Mapping, Optional, Sequence

from ..constants import CATEGORIES, Limits
from ..models import Analysis, Batch, ChangeSet, Commit, FileChange, RepoMeta
from ..utils import first_line, format_month

TRUNCATION_MARKER = "\n[truncated]"

IMPORTANCE_SCALE = """Importance scale:
1: Trivial (typos, minor tweaks)
2: Small (config changes, minor fixes)
3: Medium (notable features, significant fixes)
4: Large (major features, architectural changes)
5: Critical (core system changes)"""


def _format_date(value: Optional[datetime]) -> str:
    return value.date().isoformat() if value else ""


def format_commit(commit: Commit) -> str:
    sha = commit.sha[:7] or "?"
    return f"- {sha}: {commit.first_line} [{_format_date(commit.date)}]"


def format_date_range(batch: Batch) -> str:
    if not batch.start_date or not batch.end_date:
        return "unknown"
    return f"{_format_date(batch.end_date)} - {_format_date(batch.start_date)}"


def batch_categorization_prompt(batch: Batch) -> str:
    """Pass-1 prompt: commit one-liners and dates only, no diffs."""
    commits = "\n".join(format_commit(c) for c in batch.commits)
    return f"""Analyze these git commits and categorize:

Commits ({batch.commit_count} total, {format_date_range(batch)}):
{commits}

Respond ONLY with JSON:
{{
  "category": "{'|'.join(CATEGORIES)}",
  "description": "Brief 1-sentence summary of what was done",
  "importance": 1-5
}}

{IMPORTANCE_SCALE}"""


def summarize_files(files: Sequence[FileChange], limit: int = Limits.MAX_FILES_LISTED) -> str:
    lines = [
        f"  {f.status}: {f.filename} (+{f.additions}/-{f.deletions})"
        for f in files[:limit]
    ]
    if len(files) > limit:
        lines.append(f"  ... and {len(files) - limit} more files")
    return "\n".join(lines)


def summarize_patches(
    files: Iterable[FileChange],
    *,
    max_files: int = Limits.MAX_PATCH_FILES,
    per_file_chars: int = Limits.MAX_PATCH_CHARS_PER_FILE,
    total_chars: int = Limits.MAX_PATCH_CHARS,
) -> str:
    """Sample of patch text, bounded per file and in total."""
    chunks: List[str] = []
    for f in files:
        if len(chunks) >= max_files:
            break
        if not f.patch:
            continue
        body = f.patch[:per_file_chars]
        if len(f.patch) > per_file_chars:
            body += TRUNCATION_MARKER
        chunks.append(f"--- {f.filename} ---\n{body}")

    combined = "\n\n".join(chunks)
    if len(combined) > total_chars:
        combined = combined[: total_chars - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER
    return combined


def detailed_analysis_prompt(batch: Batch, changes: Optional[ChangeSet]) -> str:
    """Pass-2 prompt: commit list plus a bounded sample of the batch's diff."""
    commits = "\n".join(format_commit(c) for c in batch.commits)
    files = changes.files if changes is not None else ()
    files_summary = summarize_files(files) or "No file details available"
    patch_summary = summarize_patches(files)

    code_section = ""
    if patch_summary:
        code_section = f"Code changes (sample):\n```diff\n{patch_summary}\n```"

    stats_line = ""
    if changes is not None and changes.stats is not None:
        stats_line = f"\nTotals: +{changes.stats.additions}/-{changes.stats.deletions}\n"

    return f"""Analyze this code change for a developer portfolio:

Commits:
{commits}

Files changed:
{files_summary}
{stats_line}
{code_section}

Write a professional description (under 150 words) covering:
1. What was implemented/fixed/changed
2. Key technical decisions or patterns used
3. Impact of the change

Write in third person, technical but accessible tone. State only what the commits and diff show."""


def analyses_date_range(analyses: Iterable[Analysis]) -> str:
    """'Mon YYYY' or 'Mon YYYY - Mon YYYY' spanning all batches."""
    min_date: Optional[datetime] = None
    max_date: Optional[datetime] = None
    for analysis in analyses:
        batch = analysis.batch
        if not batch.start_date:
            continue
        start = batch.start_date
        end = batch.end_date or batch.start_date
        if min_date is None or end < min_date:
            min_date = end
        if max_date is None or start > max_date:
            max_date = start

    if min_date is None or max_date is None:
        return "various dates"
    if (min_date.year, min_date.month) == (max_date.year, max_date.month):
        return format_month(min_date)
    return f"{format_month(min_date)} - {format_month(max_date)}"


def portfolio_summary_prompt(
    by_category: Mapping[str, Sequence[Analysis]],
    repo_meta: RepoMeta,
    *,
    per_category: int = Limits.MAX_ITEMS_PER_CATEGORY,
) -> str:
    """Synthesis prompt over the most important analyses of each category."""
    sections: List[str] = []
    analyses: List[Analysis] = []
    for category, items in by_category.items():
        analyses.extend(items)
        if not items:
            continue
        ranked = sorted(items, key=lambda a: a.importance or 0, reverse=True)[:per_category]
        lines = []
        for a in ranked:
            suffix = f" ({a.batch.commit_count} commits)" if a.detailed_analysis else ""
            lines.append(f"  - {first_line(a.description)}{suffix}")
        sections.append(f"{category.upper()}:\n" + "\n".join(lines))

    total_commits = sum(a.batch.commit_count for a in analyses)
    header = [f"Repository: {repo_meta.name}"]
    if repo_meta.description:
        header.append(f"Description: {repo_meta.description}")
    if repo_meta.languages:
        header.append(f"Languages: {', '.join(repo_meta.languages)}")
    header_text = "\n".join(header)
    contributions = "\n\n".join(sections)

    return f"""Generate a portfolio-ready summary of contributions to this repository:

{header_text}

Contributions ({total_commits} commits, {analyses_date_range(analyses)}):
{contributions}

Generate a markdown summary with these sections:
1. **Overview** - 2-3 sentence summary of contributions
2. **Key Contributions** - Bulleted list of significant work
3. **Technical Highlights** - Technologies, patterns, or skills demonstrated

Guidelines:
- Write in first person ("I implemented...", "I designed...")
- Professional but factual tone; do not invent work that is not listed
- Focus on impact and technical depth
- Keep total length under 400 words"""
