"""
seo_checker/services/score_calculator.py
Two independent aggregation layers:
  - category score (0–100) from that category's findings only
  - overall score (0–100) from the category scores only
Also generates a human-readable summary string.
"""
import math
from typing import Dict, Iterable, List, Mapping, Union

from ..models import CategoryId, Finding, FindingStatus

STATUS_WEIGHTS: Dict[FindingStatus, int] = {
    FindingStatus.PASS: 100,
    FindingStatus.WARN: 50,
    FindingStatus.FAIL: 0,
    FindingStatus.INFO: 50,
}

MAX_SUMMARY_ISSUES = 5


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def _clamp(value: int) -> int:
    return max(0, min(100, value))


def aggregate_category(findings: Iterable[Finding]) -> int:
    """Mean of the status weights of a category's findings. Empty scores 0."""
    weights = [STATUS_WEIGHTS[FindingStatus(f.status)] for f in findings]
    if not weights:
        return 0
    return _clamp(round_half_up(sum(weights) / len(weights)))


def overall_score(category_scores: Union[Mapping[str, int], Iterable[int]]) -> int:
    """
    Equal-weight mean of the category scores actually present.
    Skipped categories must not be passed in; they are never counted as 0.
    """
    values = list(category_scores.values()) if isinstance(category_scores, Mapping) else list(category_scores)
    if not values:
        return 0
    return _clamp(round_half_up(sum(values) / len(values)))


def score_label(score: int) -> str:
    if score >= 80:
        return "excellent"
    if score >= 60:
        return "good"
    if score >= 40:
        return "fair"
    return "poor"


def generate_summary(score: int, findings_by_category: Mapping[CategoryId, List[Finding]]) -> str:
    """Generate a short human-readable summary of the analysis."""
    issues = []
    for findings in findings_by_category.values():
        for f in findings:
            if f.status == FindingStatus.FAIL and f.name not in issues:
                issues.append(f.name)

    summary = f"Overall SEO health is {score_label(score)} ({score}/100)."
    if issues:
        shown = issues[:MAX_SUMMARY_ISSUES]
        more = len(issues) - len(shown)
        summary += f" Key issues: {', '.join(shown)}"
        summary += f" and {more} more." if more else "."
    else:
        summary += " No critical issues detected."
    return summary


def score_and_summarize(findings_by_category: Mapping[CategoryId, List[Finding]]) -> Dict:
    """
    Convenience function: compute category scores, overall score and summary.
    Does NOT mutate its input.
    """
    category_scores = {
        CategoryId(cat).value: aggregate_category(findings)
        for cat, findings in findings_by_category.items()
    }
    score = overall_score(category_scores)
    return {
        "category_scores": category_scores,
        "overall_score": score,
        "summary": generate_summary(score, findings_by_category),
    }
