import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from srag.config import find_config_path, load_config, setup_logging
from srag.service import get_service


def main():
    parser = argparse.ArgumentParser(
        description="Chunk documents and index them for retrieval"
    )
    parser.add_argument(
        "documents",
        nargs="*",
        help="Document names relative to the documents directory (default: all)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.toml in project root)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Clear stored chunks and vectors before ingesting everything",
    )
    parser.add_argument("--chunk-size", type=int, help="Override ingestion.chunk_size")
    parser.add_argument("--chunk-overlap", type=int, help="Override ingestion.chunk_overlap")
    parser.add_argument(
        "--strategy",
        choices=["fixed", "semantic", "hybrid", "sentence"],
        help="Override ingestion.chunking_strategy",
    )

    args = parser.parse_args()

    try:
        config_path = find_config_path(args.config)
        setup_logging(load_config(config_path))
        service = get_service(config_path)

        if args.force:
            result = service.ingestion.process_all_documents(force=True)
            response = {
                "success": True,
                "totalChunks": result.total_chunks,
                "results": [r.to_dict() for r in result.results],
            }
        else:
            documents = args.documents or [
                d["name"] for d in service.list_documents()["documents"]
            ]
            options = {
                key: value
                for key, value in (
                    ("chunkSize", args.chunk_size),
                    ("chunkOverlap", args.chunk_overlap),
                    ("chunkingStrategy", args.strategy),
                )
                if value is not None
            }
            if not documents:
                print("No documents to ingest")
                return 0
            response = service.preprocess({"documents": documents, "options": options})

        print("\n=== Ingestion Complete ===")
        print(f"Chunks created: {response['totalChunks']}")
        print(json.dumps(response["results"], indent=2))
        failed = [r for r in response["results"] if r["status"] == "failed"]
        return 1 if failed else 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
