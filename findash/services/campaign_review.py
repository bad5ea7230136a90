"""
Campaign Review

Rule based readiness check run by POST /api/campaigns/<id>/validate. Each
failed check costs ISSUE_PENALTY points off 100, never below MIN_SCORE, and
contributes one suggestion. A campaign that passes everything gets the
standing advice in COMPLETE_NOTES.
"""

from typing import List, Tuple

MIN_SCORE = 80
ISSUE_PENALTY = 5
MIN_NARRATIVE_LENGTH = 40

CHECKS = (
    (lambda c: not c.activities,
     'Select at least one marketing activity for the campaign'),
    (lambda c: not c.countries,
     'Consider expanding your target audience demographic analysis'),
    (lambda c: not c.platforms,
     'Choose the platforms the campaign will run on'),
    (lambda c: not c.hero_artwork_path,
     'Add hero artwork so the creative can be reviewed'),
    (lambda c: len(c.narrative or '') < MIN_NARRATIVE_LENGTH,
     'Expand the narrative so it explains the story behind the campaign'),
)

COMPLETE_NOTES = [
    'Budget allocation appears optimal for selected marketing activities',
    'Campaign narrative aligns well with current market trends',
    'Recommended to include A/B testing for creative elements',
]


def review_campaign(campaign) -> Tuple[int, List[str]]:
    """(score, suggestions) for a campaign"""
    issues = [message for failed, message in CHECKS if failed(campaign)]
    score = max(MIN_SCORE, 100 - ISSUE_PENALTY * len(issues))
    return score, issues or list(COMPLETE_NOTES)
