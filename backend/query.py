import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from srag.config import find_config_path, load_config, setup_logging
from srag.service import get_service


def main():
    parser = argparse.ArgumentParser(
        description="Answer a question from the indexed documents"
    )
    parser.add_argument("query", help="The question to answer")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.toml in project root)",
    )
    parser.add_argument("--num-results", type=int, help="Chunks to retrieve per path")
    parser.add_argument("--threshold", type=float, help="Minimum vector similarity")
    parser.add_argument("--max-attempts", type=int, help="Refinement attempt bound")
    parser.add_argument(
        "--no-hybrid",
        action="store_true",
        help="Only run the keyword scan when vector search finds nothing",
    )
    parser.add_argument(
        "--json", action="store_true", help="Print the full response as JSON"
    )

    args = parser.parse_args()

    options = {
        key: value
        for key, value in (
            ("numResults", args.num_results),
            ("similarityThreshold", args.threshold),
            ("maxAttempts", args.max_attempts),
        )
        if value is not None
    }
    if args.no_hybrid:
        options["useHybridSearch"] = False

    try:
        config_path = find_config_path(args.config)
        setup_logging(load_config(config_path))
        response = get_service(config_path).query({"query": args.query, "options": options})
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(response, indent=2))
    else:
        evaluation = response["evaluation"]
        print(response["response"])
        print(
            f"\n[{response['state']}] score={evaluation['score']:.2f} "
            f"attempts={evaluation['attempts']}"
        )
        print(f"Reasoning: {evaluation['reasoning']}")
    return 0 if response["success"] else 2


if __name__ == "__main__":
    sys.exit(main())
