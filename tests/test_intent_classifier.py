from __future__ import annotations

from skillrouter.routing.classifier import IntentClassifier
from skillrouter.routing.registry import SkillRegistry


def _classifier(session, *names: str, inactive: tuple[str, ...] = ()) -> IntentClassifier:
    registry = SkillRegistry(session)
    for name in names:
        skill = registry.register({"name": name, "version": "1", "endpoint": f"http://skills.local/{name}"})
        if name in inactive:
            registry.deactivate(skill.id)
    return IntentClassifier(registry)


def test_name_substring_match_is_case_insensitive(session):
    classifier = _classifier(session, "resume", "roadmap")

    intent = classifier.classify("Help me with my RESUME please")

    assert intent.skill_name == "resume"
    assert intent.skill_id is not None
    assert intent.confidence == 1.0
    assert intent.reason == "skill_name_match"


def test_first_match_wins_in_registration_order(session):
    classifier = _classifier(session, "roadmap", "resume")

    intent = classifier.classify("turn my resume into a roadmap")

    assert intent.skill_name == "roadmap"


def test_classification_is_deterministic(session):
    classifier = _classifier(session, "resume", "mentorship", "roadmap")

    results = {classifier.classify("find mentorship and a roadmap").skill_id for _ in range(5)}

    assert len(results) == 1


def test_falls_back_to_general_skill(session):
    classifier = _classifier(session, "resume", "general-chat", "roadmap")

    intent = classifier.classify("what should I study next year?")

    assert intent.skill_name == "general-chat"
    assert intent.confidence == 0.0
    assert intent.reason == "general_fallback"


def test_falls_back_to_first_active_skill(session):
    classifier = _classifier(session, "resume", "roadmap", inactive=("resume",))

    intent = classifier.classify("something unrelated")

    assert intent.skill_name == "roadmap"
    assert intent.confidence == 0.0
    assert intent.reason == "first_active_fallback"


def test_inactive_skills_are_never_matched(session):
    classifier = _classifier(session, "resume", "general", inactive=("resume",))

    intent = classifier.classify("help me with my resume")

    assert intent.skill_name == "general"


def test_empty_catalog_returns_general_sentinel(session):
    classifier = _classifier(session, "resume", inactive=("resume",))

    intent = classifier.classify("help me with my resume", {"grade": 11})

    assert intent.skill_id is None
    assert intent.skill_name == "general"
    assert intent.confidence == 0.0
