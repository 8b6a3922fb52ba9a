from __future__ import annotations

from datetime import datetime, timezone

from gitaudit.analyze.prompts import (
    TRUNCATION_MARKER,
    analyses_date_range,
    batch_categorization_prompt,
    detailed_analysis_prompt,
    portfolio_summary_prompt,
    summarize_files,
    summarize_patches,
)
from gitaudit.models import Analysis, Batch, ChangeSet, ChangeStats, Commit, CommitDetail, FileChange, RepoMeta


def _dt(year: int, month: int, day: int = 1) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def _batch(start: datetime, end: datetime, messages=("feat: add export",)) -> Batch:
    commits = tuple(
        Commit(sha=f"abcdef{i}123", message=m, date=start) for i, m in enumerate(messages)
    )
    return Batch(commits=commits, start_date=start, end_date=end, category="feature")


def _analysis(batch: Batch, importance: int = 3, description: str = "Did a thing") -> Analysis:
    return Analysis(batch=batch, category=batch.category, description=description, importance=importance)


def test_categorization_prompt_lists_commits_and_range() -> None:
    batch = _batch(_dt(2024, 3, 5), _dt(2024, 3, 4), ("feat: add export\n\nlong body", "fix: typo"))
    prompt = batch_categorization_prompt(batch)

    assert "Commits (2 total, 2024-03-04 - 2024-03-05)" in prompt
    assert "- abcdef0: feat: add export [2024-03-05]" in prompt
    assert "long body" not in prompt
    assert "feature|bugfix|refactor|docs|test|chore|style|performance|other" in prompt


def test_summarize_files_caps_listing() -> None:
    files = [FileChange(f"f{i}.py", additions=i) for i in range(13)]
    text = summarize_files(files)
    assert text.count("modified:") == 10
    assert text.endswith("... and 3 more files")


def test_summarize_patches_truncates_per_file_and_total() -> None:
    files = [FileChange(f"f{i}.py", patch="x" * 900) for i in range(8)]
    text = summarize_patches(files)

    assert len(text) <= 3000
    assert text.endswith(TRUNCATION_MARKER)
    assert "--- f4.py ---" in text
    assert "--- f5.py ---" not in text


def test_summarize_patches_caps_total_size() -> None:
    files = [FileChange(f"f{i}.py", patch="x" * 900) for i in range(8)]
    text = summarize_patches(files, per_file_chars=900)

    assert len(text) == 3000
    assert text.endswith(TRUNCATION_MARKER)


def test_summarize_patches_skips_files_without_patch() -> None:
    files = [FileChange("binary.png"), FileChange("a.py", patch="+print()")]
    assert summarize_patches(files) == "--- a.py ---\n+print()"


def test_detailed_prompt_includes_diff_sample() -> None:
    files = (FileChange("a.py", additions=2, deletions=1, patch="+new\n-old"),)
    detail = CommitDetail(sha="abc", message="m", date=None, files=files, stats=ChangeStats(2, 1, 3))
    prompt = detailed_analysis_prompt(_batch(_dt(2024, 1), _dt(2024, 1)), ChangeSet.single(detail))

    assert "modified: a.py (+2/-1)" in prompt
    assert "```diff" in prompt
    assert "Totals: +2/-1" in prompt


def test_detailed_prompt_without_changes() -> None:
    prompt = detailed_analysis_prompt(_batch(_dt(2024, 1), _dt(2024, 1)), None)
    assert "No file details available" in prompt
    assert "```diff" not in prompt


def test_date_range_formats() -> None:
    same_month = [_analysis(_batch(_dt(2024, 2, 20), _dt(2024, 2, 3)))]
    assert analyses_date_range(same_month) == "Feb 2024"

    spanning = [
        _analysis(_batch(_dt(2024, 5, 2), _dt(2024, 5, 1))),
        _analysis(_batch(_dt(2023, 11, 9), _dt(2023, 11, 8))),
    ]
    assert analyses_date_range(spanning) == "Nov 2023 - May 2024"
    assert analyses_date_range([]) == "various dates"


def test_portfolio_prompt_keeps_top_five_per_category() -> None:
    batch = _batch(_dt(2024, 4, 2), _dt(2024, 4, 1))
    features = [_analysis(batch, importance=i % 5 + 1, description=f"feature {i}") for i in range(7)]
    by_category = {"feature": features, "docs": []}

    prompt = portfolio_summary_prompt(by_category, RepoMeta(name="widgets"))

    assert "FEATURE:" in prompt
    assert "DOCS:" not in prompt
    listed = [line for line in prompt.splitlines() if line.startswith("  - feature")]
    assert len(listed) == 5
    # importance 1 items (i=0 and i=5) are the ones dropped
    assert "feature 0" not in prompt
    assert "feature 5" not in prompt
    assert "Contributions (7 commits, Apr 2024)" in prompt
