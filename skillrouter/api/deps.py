from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from skillrouter.persistence.pg import get_session
from skillrouter.routing.invoker import SkillInvoker
from skillrouter.routing.orchestrator import RouteOrchestrator


def get_skill_invoker() -> SkillInvoker:
    return SkillInvoker()


def get_orchestrator(
    session: Session = Depends(get_session),
    invoker: SkillInvoker = Depends(get_skill_invoker),
) -> RouteOrchestrator:
    return RouteOrchestrator(session, invoker=invoker)
