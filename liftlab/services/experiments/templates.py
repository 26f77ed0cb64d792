from typing import Dict, List

from liftlab.core.exceptions import ValidationError
from liftlab.models.experiment import TestType
from liftlab.models.schemas import TestTemplate

EMAIL_SUBJECT_LINE_TEMPLATE = TestTemplate(
    id="email-subject-line",
    name="Email Subject Line Test",
    description="Test different email subject lines for better open rates",
    type=TestType.EMAIL,
    minimum_sample_size=1000,
    confidence_level=0.95,
    duration_days=7,
    primary_metric="open_rate",
    secondary_metrics=["click_rate", "conversion_rate"],
    best_practices=[
        "Keep subject lines under 50 characters",
        "Test one variable at a time",
        "Avoid spam trigger words",
        "Use clear call-to-action",
    ],
    common_metrics=["open_rate", "click_rate", "conversion_rate", "revenue"],
    success_criteria=["95% confidence level", "Minimum 1000 recipients per variant"],
)

LANDING_PAGE_HEADLINE_TEMPLATE = TestTemplate(
    id="landing-page-headline",
    name="Landing Page Headline Test",
    description="Test different headlines for better conversion rates",
    type=TestType.LANDING_PAGE,
    minimum_sample_size=500,
    confidence_level=0.95,
    duration_days=14,
    primary_metric="conversion_rate",
    secondary_metrics=["bounce_rate", "time_on_page"],
    best_practices=[
        "Focus on value proposition",
        "Use action-oriented language",
        "Keep headlines clear and concise",
        "Test emotional vs rational appeals",
    ],
    common_metrics=["conversion_rate", "bounce_rate", "time_on_page", "revenue"],
    success_criteria=["95% confidence level", "Minimum 500 visitors per variant"],
)

CTA_BUTTON_TEMPLATE = TestTemplate(
    id="cta-button",
    name="Call-to-Action Button Test",
    description="Test different CTA button styles and text",
    type=TestType.CTA,
    minimum_sample_size=300,
    confidence_level=0.95,
    duration_days=10,
    primary_metric="click_rate",
    secondary_metrics=["conversion_rate", "revenue"],
    best_practices=[
        "Use contrasting colors",
        "Test action-oriented text",
        "Ensure button is prominent",
        "Test different button sizes",
    ],
    common_metrics=["click_rate", "conversion_rate", "revenue"],
    success_criteria=["95% confidence level", "Minimum 300 visitors per variant"],
)

TEMPLATES: Dict[str, TestTemplate] = {
    EMAIL_SUBJECT_LINE_TEMPLATE.id: EMAIL_SUBJECT_LINE_TEMPLATE,
    LANDING_PAGE_HEADLINE_TEMPLATE.id: LANDING_PAGE_HEADLINE_TEMPLATE,
    CTA_BUTTON_TEMPLATE.id: CTA_BUTTON_TEMPLATE,
}


def get_template(template_id: str) -> TestTemplate:
    if template_id not in TEMPLATES:
        raise ValidationError(
            f"Unknown template: {template_id}. Available: {', '.join(TEMPLATES.keys())}"
        )
    return TEMPLATES[template_id]


def list_templates() -> List[TestTemplate]:
    return list(TEMPLATES.values())
