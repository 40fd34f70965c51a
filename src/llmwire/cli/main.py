"""llmwire CLI - ask, moderate, token counts and cost estimates."""

import argparse
import logging
import sys

from ..client import Client
from ..errors import LLMWireError
from ..events import OutputTextDeltaEvent
from ..types import DEFAULT_MODEL, ResponseRequest
from ..usage import count_tokens, estimate_cost


def cmd_ask(args):
    """Send a prompt to the responses endpoint."""
    request = ResponseRequest(
        model=args.model,
        input=args.prompt,
        instructions=args.instructions,
        previous_response_id=args.previous_response_id,
    )
    with Client() as client:
        if not args.stream:
            response = client.responses.send(request)
            print(response.text)
            print(f"[response id: {response.id}]", file=sys.stderr)
            return

        with client.responses.stream(request) as session:
            for event in session:
                if isinstance(event, OutputTextDeltaEvent):
                    print(event.delta, end="", flush=True)
        print()
        if session.err() is not None:
            raise session.err()
        if session.decode_errors:
            print(f"[{len(session.decode_errors)} events dropped]", file=sys.stderr)


def cmd_moderate(args):
    """Check text with the moderation endpoint."""
    with Client() as client:
        result = client.moderation.check(args.text)
    if result.flagged:
        print(f"Flagged: {', '.join(result.flagged_categories)}")
        sys.exit(2)
    print("Not flagged")


def cmd_cost(args):
    """Estimate cost for a request."""
    cost = estimate_cost(args.model, args.input, args.output)
    print(f"Estimated cost: ${cost:.6f}")


def cmd_tokens(args):
    """Count tokens of a text."""
    print(count_tokens(args.model, text=args.text))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="llmwire",
        description="llmwire: command line client for the responses API",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ask
    p_ask = subparsers.add_parser("ask", help="Ask a model")
    p_ask.add_argument("prompt", help="Prompt text")
    p_ask.add_argument("--model", "-m", default=DEFAULT_MODEL, help="Model name")
    p_ask.add_argument("--instructions", help="System instructions")
    p_ask.add_argument("--stream", "-s", action="store_true", help="Stream output")
    p_ask.add_argument("--previous-response-id", help="Continue from a response")
    p_ask.set_defaults(func=cmd_ask)

    # moderate
    p_moderate = subparsers.add_parser("moderate", help="Classify text for policy violations")
    p_moderate.add_argument("text", help="Text to check")
    p_moderate.set_defaults(func=cmd_moderate)

    # cost
    p_cost = subparsers.add_parser("cost", help="Estimate request cost")
    p_cost.add_argument("model", help="Model name")
    p_cost.add_argument("--input", "-i", type=int, required=True, help="Input tokens")
    p_cost.add_argument("--output", "-o", type=int, default=0, help="Output tokens")
    p_cost.set_defaults(func=cmd_cost)

    # tokens
    p_tokens = subparsers.add_parser("tokens", help="Count tokens")
    p_tokens.add_argument("model", help="Model name")
    p_tokens.add_argument("text", help="Text to count")
    p_tokens.set_defaults(func=cmd_tokens)

    return parser


def main(argv: list[str] | None = None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except LLMWireError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
