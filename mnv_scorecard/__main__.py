import argparse
import asyncio
import json
import sys

from mnv_scorecard.client.bootstrap import build_llm
from mnv_scorecard.core.exceptions import EvaluationException, UpstreamStatusException
from mnv_scorecard.services.evaluation.post_process import extract_text
from mnv_scorecard.services.evaluation.prompt_builder import get_system_prompt
from mnv_scorecard.services.evaluation.scoring import rescore_evaluation
from mnv_scorecard.services.plan_evaluator import PlanEvaluator
from mnv_scorecard.utils.rubric_loader import get_rubric_store


def _read_file(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


async def _amain(text: str) -> int:
    evaluator = PlanEvaluator(build_llm())
    envelope = await evaluator.evaluate_compliance(text)
    body = extract_text(envelope)
    try:
        print(json.dumps(json.loads(body), ensure_ascii=False, indent=2))
    except (ValueError, RecursionError):
        # Unscored: the model did not return JSON
        print(body)
    return 0


def _rescore(path: str) -> int:
    payload = json.loads(_read_file(path))
    scored = rescore_evaluation(payload, get_rubric_store())
    print(json.dumps(scored, ensure_ascii=False, indent=2))
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Score an M&V plan against the principles rubric and plan checklist")
    group = parser.add_mutually_exclusive_group(required=False)
    group.add_argument("--text", help="Plan text to evaluate")
    group.add_argument("--file", help="Path to a file containing the plan text")
    group.add_argument("--rescore", metavar="FILE", help="Recompute scores of a saved model response (no network)")
    group.add_argument("--print-prompt", action="store_true", help="Print the rubric system prompt and exit")
    args = parser.parse_args(argv)

    if args.print_prompt:
        print(get_system_prompt())
        return 0

    try:
        if args.rescore:
            return _rescore(args.rescore)
        if args.text is not None:
            text = args.text
        elif args.file is not None:
            text = _read_file(args.file)
        else:
            # Read from stdin
            text = sys.stdin.read()
    except OSError as e:
        print(f"Failed to read file: {e}", file=sys.stderr)
        return 2
    except json.JSONDecodeError as e:
        print(f"Not a JSON evaluation: {e}", file=sys.stderr)
        return 2

    if not text.strip():
        print("No text provided. Use --text, --file, or pipe input.", file=sys.stderr)
        return 2

    try:
        return asyncio.run(_amain(text))
    except UpstreamStatusException as e:
        print(f"Provider returned {e.status_code}: {json.dumps(e.body)}", file=sys.stderr)
        return 1
    except EvaluationException as e:
        print(e.message, file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
