from skillrouter.routing.classifier import IntentClassifier
from skillrouter.routing.history import HistoryPage, RouteHistoryStore
from skillrouter.routing.invoker import SkillInvoker
from skillrouter.routing.models import Intent, RouteAttempt, RouteOutcome, RouteRequest, SkillInvocationRequest
from skillrouter.routing.orchestrator import RouteOrchestrator
from skillrouter.routing.registry import SkillRegistry

__all__ = [
    "HistoryPage",
    "Intent",
    "IntentClassifier",
    "RouteAttempt",
    "RouteHistoryStore",
    "RouteOrchestrator",
    "RouteOutcome",
    "RouteRequest",
    "SkillInvocationRequest",
    "SkillInvoker",
    "SkillRegistry",
]
