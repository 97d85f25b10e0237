from __future__ import annotations

import argparse
import json
from pathlib import Path

import uvicorn

from skillrouter.core.config import get_settings
from skillrouter.core.errors import RoutingError
from skillrouter.core.logging import configure_logging
from skillrouter.core.security import Actor
from skillrouter.persistence.pg import init_db, session_scope
from skillrouter.routing.models import RouteRequest
from skillrouter.routing.orchestrator import RouteOrchestrator
from skillrouter.routing.registry import SkillRegistry, skill_to_dict


def _print_json(payload) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Skill Router CLI")
    top = parser.add_subparsers(dest="command", required=True)

    skills = top.add_parser("skills", help="Skill registry operations")
    skills_sub = skills.add_subparsers(dest="skills_command", required=True)

    listing = skills_sub.add_parser("list", help="List registered skills")
    listing.add_argument("--include-inactive", action="store_true")

    register = skills_sub.add_parser("register", help="Register a skill from a JSON file")
    register.add_argument("--file", required=True, help="Path to a JSON skill definition")

    deactivate = skills_sub.add_parser("deactivate", help="Deactivate a skill")
    deactivate.add_argument("skill_id", type=int)

    route = top.add_parser("route", help="Classify, invoke and record a request")
    route.add_argument("input", help="Free-text request")
    route.add_argument("--context", default=None, help="JSON object passed to the skill")
    route.add_argument("--request-id", default=None)
    route.add_argument("--user-id", default=None, help="Record the attempt for this user id")

    serve = top.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None, help="Defaults to SR_API_HOST")
    serve.add_argument("--port", type=int, default=None, help="Defaults to SR_API_PORT")

    return parser


def _skills_command(args: argparse.Namespace) -> int:
    with session_scope() as session:
        registry = SkillRegistry(session)
        if args.skills_command == "list":
            skills = registry.find_all() if args.include_inactive else registry.find_active()
            _print_json([skill_to_dict(skill) for skill in skills])
        elif args.skills_command == "register":
            data = json.loads(Path(args.file).read_text(encoding="utf-8"))
            _print_json(skill_to_dict(registry.register(data)))
        else:
            registry.deactivate(args.skill_id)
            _print_json({"id": args.skill_id, "isActive": False})
    return 0


def _route_command(args: argparse.Namespace) -> int:
    context = json.loads(args.context) if args.context else None
    if context is not None and not isinstance(context, dict):
        raise SystemExit("--context must be a JSON object")
    actor = Actor(role="user", id=args.user_id) if args.user_id else None

    with session_scope() as session:
        outcome = RouteOrchestrator(session).route(
            RouteRequest(input=args.input, context=context, request_id=args.request_id),
            actor=actor,
            user_agent="skillrouter-cli",
        )
    _print_json(outcome.body)
    return 0 if outcome.success else 1


def _serve_command(args: argparse.Namespace) -> int:
    settings = get_settings()
    uvicorn.run(
        "skillrouter.main:app",
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        log_level=settings.log_level.lower(),
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    configure_logging(get_settings().log_level)
    parser = _build_parser()
    args = parser.parse_args(argv)
    init_db()

    try:
        if args.command == "skills":
            return _skills_command(args)
        if args.command == "route":
            return _route_command(args)
        if args.command == "serve":
            return _serve_command(args)
    except RoutingError as exc:
        _print_json({"success": False, "error": exc.message})
        return 1

    parser.error("unsupported command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
