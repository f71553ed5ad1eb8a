"""
Prompt construction for the analysis and report calls.

Both builders are pure functions of their input: the same idea (or the same
stored analysis) always yields the same messages.
"""
import json
from dataclasses import dataclass
from textwrap import dedent
from typing import Any, Dict, Iterable

from app.models import Analysis
from app.schemas.analysis import CATEGORY_NAMES, IdeaSubmission


CATEGORY_LABELS = {
    "market_opportunity": "Market Opportunity",
    "competitive_advantage": "Competitive Advantage",
    "feasibility": "Feasibility",
    "revenue_potential": "Revenue Potential",
    "market_timing": "Market Timing",
    "scalability": "Scalability",
}


@dataclass(frozen=True)
class Prompt:
    system: str
    user: str

    def messages(self) -> list:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
        ]


ANALYSIS_SYSTEM_PROMPT = dedent(
    """
    You are UseLaunchLab's straight-talking startup analyzer. Give founders honest,
    specific feedback on their idea: direct but supportive, realistic but not
    discouraging. No corporate jargon and no flattery.

    Score the idea on six factors, each from 0 (needs serious work) to 100
    (exceptionally strong).

    Core factors (60% of total):
    1. Market Opportunity (25%): is there a real problem people will pay to solve,
       how large can it get, are people looking for solutions right now?
    2. Competitive Advantage (20%): what is genuinely different, can it stay ahead
       of copycats, is there a real moat?
    3. Feasibility (15%): can it be built with current technology, with what
       resources, and how soon can users have it?

    Supporting factors (40% of total):
    4. Revenue Potential (15%): is there a clear path to revenue at a price people
       will pay, and is the model sustainable?
    5. Market Timing (15%): why now, are users ready, which trends help or hurt?
    6. Scalability (10%): what breaks first as it grows, is the growth path
       realistic?

    For each factor provide insights (title, description and concrete action steps)
    covering the current state and why it matters, plus exactly three improvement
    tips of one sentence each, most impactful first.

    Compute the weighted total out of 100 and set the status:
    70-100 READY TO VALIDATE, 50-69 NEEDS REFINEMENT, below 50 MAJOR CONCERNS.

    List critical issues that could kill the idea (legal or regulatory roadblocks,
    ethical concerns, technical impossibility, market dominance by large players),
    each with a recommendation.
    """
).strip()


REPORT_SYSTEM_PROMPT = dedent(
    """
    You are UseLaunchLab's practical startup validator. Turn an analyzed idea into a
    Validation Roadmap the founder can start executing this week. No theoretical
    frameworks or business plans: only concrete steps that produce real feedback
    from real users.

    Cover these areas:
    1. Validation Strategy: a clear plan, objectives broken into measurable goals,
       a realistic timeline.
    2. Customer Validation: target segments and where to find them, interview
       questions that get to the heart of the problem, success metrics.
    3. Solution Validation: MVP features that test the core assumptions, how to
       test each one, expected outcomes.
    4. Market Validation: research areas with sources and metrics, direct and
       indirect competitors with strengths and weaknesses.
    5. Risks and Critical Issues: showstoppers, their impact and mitigations.
    6. Next Steps: specific actions prioritized HIGH, MEDIUM or LOW by impact and
       urgency.

    Stay consistent with the scores and findings of the previous analysis; build on
    them rather than re-scoring the idea.
    """
).strip()


def build_analysis_prompt(idea: IdeaSubmission) -> Prompt:
    """Messages for the scoring call; idea fields are interpolated verbatim"""
    lines = ["Analyze this business idea:", ""]
    if idea.idea_name:
        lines.append(f"Idea Name: {idea.idea_name}")
    lines.extend([
        f"Problem Statement: {idea.problem_statement}",
        f"Target Audience: {idea.target_audience}",
        f"Unique Value Proposition: {idea.unique_value_proposition}",
        f"Product Description: {idea.product_description}",
    ])
    return Prompt(system=ANALYSIS_SYSTEM_PROMPT, user="\n".join(lines))


def _insight_lines(insights: Iterable[Dict[str, Any]]) -> list:
    return [f"- {item.get('title', '')}: {item.get('description', '')}" for item in insights]


def build_report_prompt(analysis: Analysis) -> Prompt:
    """Messages for the report call, grounded in the stored analysis"""
    lines = [
        "Generate a validation roadmap for this idea based on the previous analysis:",
        "",
        f"Problem Statement: {analysis.problem_statement}",
        f"Target Audience: {analysis.target_audience}",
        f"Unique Value Proposition: {analysis.unique_value_proposition}",
        f"Product Description: {analysis.product_description}",
        "",
        f"Overall Score: {analysis.total_score}/100 ({analysis.validation_status})",
        "",
        "Previous Analysis Insights:",
    ]

    for name in CATEGORY_NAMES:
        block = getattr(analysis, name) or {}
        score = block.get("score", 0)
        lines.append("")
        lines.append(f"{CATEGORY_LABELS[name]} Score: {score:g}/100")
        lines.extend(_insight_lines(block.get("insights", [])))

    if analysis.critical_issues:
        lines.append("")
        lines.append("Critical Issues Identified:")
        lines.extend(
            f"- {issue.get('issue', '')}: {issue.get('recommendation', '')}"
            for issue in analysis.critical_issues
        )

    return Prompt(system=REPORT_SYSTEM_PROMPT, user="\n".join(lines))


def describe_prompt(prompt: Prompt) -> str:
    """Compact JSON form of a prompt for debug logging"""
    return json.dumps({"system_chars": len(prompt.system), "user": prompt.user})
