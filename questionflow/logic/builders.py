"""
Factory helpers for common conditional rules, plus ready-made rule sets for
well-known clinical screeners.
"""

from __future__ import annotations

from typing import Any

from ..schemas.questionnaire import ConditionalRule, RuleAction, RuleOperator


class RuleBuilder:
    """Build rules with deterministic ids."""

    @staticmethod
    def show_if(source_id: int, value: Any, target_id: int) -> ConditionalRule:
        """Show target when source equals value."""
        return ConditionalRule(
            id=f"show_{target_id}_if_{source_id}_equals_{value}",
            source_question_id=source_id,
            operator=RuleOperator.EQUALS,
            comparison_value=value,
            target_question_id=target_id,
            action=RuleAction.SHOW,
        )

    @staticmethod
    def hide_if(source_id: int, value: Any, target_id: int) -> ConditionalRule:
        """Hide target when source equals value."""
        return ConditionalRule(
            id=f"hide_{target_id}_if_{source_id}_equals_{value}",
            source_question_id=source_id,
            operator=RuleOperator.EQUALS,
            comparison_value=value,
            target_question_id=target_id,
            action=RuleAction.HIDE,
        )

    @staticmethod
    def require_if(source_id: int, value: Any, target_id: int) -> ConditionalRule:
        """Require target when source equals value."""
        return ConditionalRule(
            id=f"require_{target_id}_if_{source_id}_equals_{value}",
            source_question_id=source_id,
            operator=RuleOperator.EQUALS,
            comparison_value=value,
            target_question_id=target_id,
            action=RuleAction.REQUIRE,
        )

    @staticmethod
    def skip_to_if(source_id: int, value: Any, target_id: int) -> ConditionalRule:
        """Jump to target when source equals value."""
        return ConditionalRule(
            id=f"skip_to_{target_id}_if_{source_id}_equals_{value}",
            source_question_id=source_id,
            operator=RuleOperator.EQUALS,
            comparison_value=value,
            target_question_id=target_id,
            action=RuleAction.SKIP_TO,
        )

    @staticmethod
    def end_survey_if(source_id: int, value: Any) -> ConditionalRule:
        """End the survey when source equals value."""
        return ConditionalRule(
            id=f"end_survey_if_{source_id}_equals_{value}",
            source_question_id=source_id,
            operator=RuleOperator.EQUALS,
            comparison_value=value,
            action=RuleAction.END_SURVEY,
        )

    @staticmethod
    def show_if_score_above(source_id: int, threshold: float, target_id: int) -> ConditionalRule:
        """Show target when the source answer is numerically above threshold."""
        return ConditionalRule(
            id=f"show_{target_id}_if_{source_id}_above_{threshold}",
            source_question_id=source_id,
            operator=RuleOperator.GREATER_THAN,
            comparison_value=threshold,
            target_question_id=target_id,
            action=RuleAction.SHOW,
        )

    @staticmethod
    def show_if_contains(source_id: int, value: Any, target_id: int) -> ConditionalRule:
        """Show target when the source selection/text contains value."""
        return ConditionalRule(
            id=f"show_{target_id}_if_{source_id}_contains_{value}",
            source_question_id=source_id,
            operator=RuleOperator.CONTAINS,
            comparison_value=value,
            target_question_id=target_id,
            action=RuleAction.SHOW,
        )


# =============================================================================
# COMMON RULE SETS
# =============================================================================

COMMON_RULE_SETS: dict[str, list[ConditionalRule]] = {
    # GAD-7: follow-up question when the total anxiety item is high
    "gad7_with_follow_up": [
        RuleBuilder.show_if_score_above(7, 10, 8),
        RuleBuilder.require_if(7, "Nearly every day", 8),
    ],
    # PHQ-9: crisis resources when item 9 (self-harm) is answered positively
    "phq9_with_suicide_risk": [
        RuleBuilder.show_if(9, "Several days", 10),
        RuleBuilder.show_if(9, "More than half the days", 10),
        RuleBuilder.show_if(9, "Nearly every day", 10),
        RuleBuilder.require_if(9, "Nearly every day", 11),
    ],
    # Wellness check: skip detail when doing well, add support when struggling
    "adaptive_wellness": [
        RuleBuilder.skip_to_if(1, "Excellent", 10),
        RuleBuilder.skip_to_if(1, "Very good", 8),
        RuleBuilder.show_if(2, "Very difficult", 15),
        RuleBuilder.show_if(2, "Extremely difficult", 15),
    ],
}


def get_rule_set(name: str) -> list[ConditionalRule]:
    """Copy of a named rule set; raises KeyError for unknown names."""
    return list(COMMON_RULE_SETS[name])
