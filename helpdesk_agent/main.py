"""CLI entry point for running a helpdesk flow once from the terminal.

Useful for trying prompts and tools without starting the HTTP server.

Usage:
    uv run python -m helpdesk_agent.main query "How do I reset my password?"
    uv run python -m helpdesk_agent.main summary c3oi15w89jl52t3
    uv run python -m helpdesk_agent.main letter c3oi15w89jl52t3 --debug
"""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )

    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("helpdesk_agent").setLevel(logging.DEBUG if debug else logging.INFO)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Helpdesk Agent CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    query = sub.add_parser("query", help="Ask a question against the vector index")
    query.add_argument("prompt")

    for name, text in (("summary", "Summarize a ticket"), ("letter", "Write a customer letter")):
        flow = sub.add_parser(name, help=text)
        flow.add_argument("ticket_id")
        flow.add_argument("--show-steps", action="store_true", help="Print each agent step")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run one flow and print its result."""
    args = _build_parser().parse_args(argv)

    load_dotenv()
    _configure_logging(debug=args.debug)

    # Imported late so that --help works without any configuration
    from helpdesk_agent.errors import HelpdeskError
    from helpdesk_agent.flows import LETTER_FLOW, SUMMARY_FLOW, run_query_flow, run_ticket_flow
    from helpdesk_agent.services.container import build_services

    services = build_services([args.command])
    try:
        if args.command == "query":
            documents, answer = run_query_flow(args.prompt, services.retrieval, services.completion)
            print(f"\n{answer}\n")
            print(f"({len(documents)} context documents)")
            return 0

        flow = SUMMARY_FLOW if args.command == "summary" else LETTER_FLOW
        run = run_ticket_flow(flow, args.ticket_id, services.completion, services.record_store)
    except HelpdeskError as e:
        logger.debug("Flow failed", exc_info=True)
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    if args.show_steps:
        for i, step in enumerate(run.steps, start=1):
            label = step.tool or "final answer"
            print(f"--- step {i}: {label}")
            if step.tool_input:
                print(f"input: {step.tool_input}")
            if step.observation:
                print(step.observation)
    print(f"\n{run.output}\n")
    print(f"(status: {run.status.value}, tool calls: {run.tool_invocations})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
