"""CLI entrypoint for the agent gate."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

from .config import LOG_DIR
from .critic import CriticEngine
from .diff_engine import get_granular_observation
from .models import CriticInput
from .skeleton import extract_semantic_skeleton
from .task_classifier import classify_task_type


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Route tasks, critique actions and diff page states.")
    parser.add_argument("--log-level", default="INFO", help="Python logging level.")
    parser.add_argument("--log-dir", default=str(LOG_DIR), help="Directory for log files.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    classify = subparsers.add_parser("classify", help="Pick the execution mode for a task.")
    classify.add_argument("query", help="Natural-language task.")
    classify.add_argument("--attachment", action="store_true", help="A file is attached to the task.")
    classify.add_argument("--url", action="store_true", help="A target URL is known.")
    classify.add_argument("--mime", help="MIME type of the attachment.")

    observe = subparsers.add_parser("observe", help="Describe interactive changes between two HTML files.")
    observe.add_argument("before", help="Markup captured before the action.")
    observe.add_argument("after", help="Markup captured after the action.")

    critic = subparsers.add_parser("critic", help="Ask the critic whether an action makes sense.")
    critic.add_argument("--goal", required=True, help="What the user wants to achieve.")
    critic.add_argument("--action", required=True, help="Generated action, e.g. click(12).")
    critic.add_argument("--thought", default="", help="Reasoning that produced the action.")
    critic.add_argument("--confidence", type=float, help="Generator confidence (0-1).")
    critic.add_argument("--plan-step", help="Current plan step.")
    critic.add_argument("--element", help="Description of the target element.")
    critic.add_argument("--previous-failure", help="Last verification failure, if any.")
    critic.add_argument("--force", action="store_true", help="Evaluate even when the trigger would skip.")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    log_file = _configure_logging(args.log_level, Path(args.log_dir))
    logging.debug("Log file: %s", log_file)

    if args.command == "classify":
        result = classify_task_type(
            args.query,
            has_attachment=args.attachment,
            has_url=args.url,
            attachment_mime_type=args.mime,
        )
        _emit(result.model_dump())
    elif args.command == "observe":
        before = _read_markup(args.before)
        after = _read_markup(args.after)
        _emit(get_granular_observation(extract_semantic_skeleton(before), extract_semantic_skeleton(after)))
    else:
        critic_input = CriticInput(
            goal=args.goal,
            action=args.action,
            thought=args.thought,
            plan_step=args.plan_step,
            element_description=args.element,
            previous_failure=args.previous_failure,
            confidence=args.confidence,
        )
        result = asyncio.run(_critique(critic_input, force=args.force))
        _emit(result.model_dump())
    return 0


async def _critique(critic_input: CriticInput, *, force: bool):
    engine = CriticEngine.from_env()
    if force:
        result = await engine.evaluate_action(critic_input)
    else:
        result = await engine.run_critic_loop(critic_input)
    await engine.flush_usage()
    return result


def _read_markup(path: str) -> str:
    markup_path = Path(path).expanduser()
    if not markup_path.is_file():
        raise SystemExit(f"Markup file not found: {markup_path}")
    return markup_path.read_text(encoding="utf-8")


def _emit(payload: Any) -> None:
    json.dump(payload, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")


def _configure_logging(log_level: str, log_dir: Path) -> Path:
    level = getattr(logging, log_level.upper(), logging.INFO)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"agent-gate-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}.log"
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=[stream_handler, file_handler])
    return log_file


if __name__ == "__main__":
    sys.exit(main())
