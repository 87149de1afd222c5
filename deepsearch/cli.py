"""DeepSearch - search-grounded streaming reports

Simple CLI for running one query.
"""

import argparse
import asyncio

from deepsearch.agents.clients import build_clients
from deepsearch.agents.orchestrator import Conversation, QueryOrchestrator
from deepsearch.services.context import apply_suggestion


async def run_query(query: str, server: str | None = None, show_reasoning: bool = False) -> int:
    """Run one query and print the report."""
    search_client, completion_client = build_clients(server)
    conversation = Conversation(QueryOrchestrator(search_client, completion_client))
    queue = conversation.subscribe()
    section = conversation.submit(query)

    print(f"Query: {section.query}")
    print("-" * 50)

    printed_reasoning = 0
    code = 1
    while True:
        event = await queue.get()
        event_type = event.event.value
        data = event.data

        if event_type == "sources_ready":
            results = data.get("search_results", [])
            print(f"\n[*] Sources ({len(results)}):")
            for i, result in enumerate(results, 1):
                print(f"  {i}. {result.get('title', '')[:80]}")
                print(f"     {result.get('url', '')}")
            print("\n[+] Generating report", end="", flush=True)

        elif event_type == "reasoning_updated":
            if show_reasoning:
                reasoning = data.get("reasoning", "")
                print(reasoning[printed_reasoning:], end="", flush=True)
                printed_reasoning = len(reasoning)
            else:
                print(".", end="", flush=True)

        elif event_type == "response_updated":
            print(".", end="", flush=True)

        elif event_type == "section_done":
            print(f"\n\n{'='*50}")
            print("REPORT:")
            print(f"{'='*50}")
            print(data.get("response", "") or "(the model returned an empty report)")
            code = 0
            break

        elif event_type == "section_failed":
            print(f"\n[!] Error: {data.get('error') or 'Unknown error'}")
            break

        elif event_type == "section_aborted":
            print("\n[!] Request cancelled")
            break

    await conversation.wait()
    return code


def main():
    parser = argparse.ArgumentParser(description="DeepSearch report generator")
    parser.add_argument("--query", "-q", required=True, help="Query to research")
    parser.add_argument("--server", "-s", help="Base URL of a running deepsearch server")
    parser.add_argument(
        "--suggestion",
        help="Preset prefix, e.g. 'Podcast Outline' or 'Newsletter Draft'",
    )
    parser.add_argument(
        "--show-reasoning",
        action="store_true",
        help="Print the model's reasoning as it streams",
    )

    args = parser.parse_args()
    query = apply_suggestion(args.suggestion, args.query) if args.suggestion else args.query

    raise SystemExit(asyncio.run(run_query(query, args.server, args.show_reasoning)))


if __name__ == "__main__":
    main()
