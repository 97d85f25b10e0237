from __future__ import annotations

from typing import Any

from skillrouter.persistence.models import SkillModel
from skillrouter.routing.models import Intent
from skillrouter.routing.registry import SkillRegistry


GENERAL_INTENT = "general"
MATCH_CONFIDENCE = 1.0
FALLBACK_CONFIDENCE = 0.0


class IntentClassifier:
    """First-match substring classifier over the active catalog.

    Skills are scanned in registration order; the first skill whose name occurs
    in the case-folded input wins. Without a match the classifier falls back to
    a skill named like "general", then to the first active skill, so it only
    returns no skill when the active catalog is empty.
    """

    def __init__(self, registry: SkillRegistry):
        self.registry = registry

    @staticmethod
    def _fallback(skills: list[SkillModel]) -> tuple[SkillModel, str]:
        for skill in skills:
            if GENERAL_INTENT in skill.name.casefold():
                return skill, "general_fallback"
        return skills[0], "first_active_fallback"

    def classify(self, input_text: str, context: dict[str, Any] | None = None) -> Intent:
        skills = self.registry.find_active()
        if not skills:
            return Intent(
                skill_id=None,
                skill_name=GENERAL_INTENT,
                confidence=FALLBACK_CONFIDENCE,
                reason="no_active_skills",
            )

        normalized = input_text.casefold()
        for skill in skills:
            name = skill.name.casefold()
            if name and name in normalized:
                return Intent(
                    skill_id=skill.id,
                    skill_name=skill.name,
                    confidence=MATCH_CONFIDENCE,
                    reason="skill_name_match",
                )

        fallback, reason = self._fallback(skills)
        return Intent(
            skill_id=fallback.id,
            skill_name=fallback.name,
            confidence=FALLBACK_CONFIDENCE,
            reason=reason,
        )
