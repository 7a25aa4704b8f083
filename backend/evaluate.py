import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from srag.config import find_config_path, get_storage_dir, load_config, setup_logging
from srag.evaluation.ragas_eval import get_evaluator, summarize
from srag.pipelines import Orchestrator

logger = logging.getLogger(__name__)


def run_batch_evaluation(
    dataset_path: Path,
    config_path: Path,
    output_dir: Path | None = None,
) -> int:
    """Answer every question in a dataset and score the final answers."""
    config = load_config(config_path)
    setup_logging(config)

    if not dataset_path.exists():
        logger.error(f"Dataset file {dataset_path} not found.")
        return 1

    with open(dataset_path, "r") as f:
        eval_data = json.load(f)

    orchestrator = Orchestrator.from_config(config, config_path)
    # Every question must run the full loop
    orchestrator.cache = None
    evaluator = get_evaluator()

    results = []
    ground_truths = []
    for item in eval_data:
        question = item.get("question")
        if not question:
            continue
        logger.info(f"Processing query: {question[:50]}...")
        results.append(orchestrator.run(question))
        ground_truths.append(item.get("ground_truth") or "")

    if not results:
        logger.error("Dataset contains no questions.")
        return 1

    logger.info(f"Running RAGAS evaluation on {len(results)} answers...")
    frame = evaluator.evaluate_results(
        results, ground_truths if all(ground_truths) else None
    )
    if frame.empty:
        logger.error("Evaluation produced no scores.")
        return 1

    output_dir = output_dir or get_storage_dir(config, config_path)
    output_dir.mkdir(parents=True, exist_ok=True)
    csv_path = output_dir / "evaluation_results.csv"
    json_path = output_dir / "evaluation_results.json"

    frame.to_csv(csv_path, index=False)
    summary = summarize(frame)
    with open(json_path, "w") as f:
        json.dump(
            {"summary": summary, "detailed_results": frame.to_dict(orient="records")},
            f,
            indent=4,
            default=str,
        )

    logger.info(f"Evaluation results saved to {csv_path} and {json_path}")
    logger.info(f"Summary: {summary}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Score answers with RAGAS")
    parser.add_argument(
        "--dataset",
        type=Path,
        default=Path("data/eval_dataset.json"),
        help="JSON list of {question, ground_truth} items",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.toml in project root)",
    )
    parser.add_argument("--output-dir", type=Path, default=None)

    args = parser.parse_args()
    return run_batch_evaluation(args.dataset, find_config_path(args.config), args.output_dir)


if __name__ == "__main__":
    sys.exit(main())
