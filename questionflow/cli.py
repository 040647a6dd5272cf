#!/usr/bin/env python3
"""
CLI for the questionflow engine.

Usage:
    python -m questionflow.cli run --sample gad7_adaptive
    python -m questionflow.cli run path/to/questionnaire.json --output-dir ./outputs
    python -m questionflow.cli evaluate path/to/questionnaire.json --responses '{"1": "Several days"}'
    python -m questionflow.cli presets

Environment Variables:
    QUESTIONFLOW_AUTOSAVE_DELAY, QUESTIONFLOW_CONFIDENCE_SCOPE, QUESTIONFLOW_LOG_LEVEL
    (also read from a .env file in the working directory)
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from .config import FlowSettings, configure_logging
from .errors import InvalidResponseError, QuestionFlowError
from .flow import FlowController, FlowState, StepOutcome
from .logic import COMMON_RULE_SETS
from .logic.report import evaluate_responses
from .schemas import (
    AdaptiveMetadata,
    Question,
    QuestionType,
    Questionnaire,
    list_samples,
    load_questionnaire,
    load_sample,
)

COMMANDS = "Commands: 'back' previous question, 'next' continue, 'submit' finish, 'status' progress, 'quit' abandon"


def parse_answer(question: Question, raw: str):
    """Turn terminal input into a response value for this question type."""
    text = raw.strip()
    qtype = question.type

    if qtype == QuestionType.BOOLEAN:
        lowered = text.lower()
        if lowered in ("y", "yes", "true", "1"):
            return True
        if lowered in ("n", "no", "false", "0"):
            return False
        raise InvalidResponseError("Please answer yes or no")

    if qtype in (QuestionType.RATING, QuestionType.SLIDER):
        try:
            number = float(text)
        except ValueError as exc:
            raise InvalidResponseError("Please enter a number") from exc
        return int(number) if number.is_integer() else number

    options = question.options or []

    def pick(token: str) -> str:
        token = token.strip()
        if token.isdigit() and 1 <= int(token) <= len(options):
            return options[int(token) - 1]
        return token

    if qtype in (QuestionType.SINGLE_CHOICE, QuestionType.LIKERT):
        return pick(text)

    if qtype == QuestionType.MULTIPLE_CHOICE:
        return [pick(token) for token in text.split(",") if token.strip()]

    return raw


def _print_question(flow: FlowController, question: Question):
    view = flow.question_view(question)
    total = len(flow.visible_questions)
    required = " (required)" if question.required else ""

    print(f"\n{'─'*50}")
    print(f"Question {flow.current_index + 1} of {total}{required}")
    print(f"{'─'*50}")
    print(f"\n{view['text']}\n")

    for i, option in enumerate(question.options or [], start=1):
        print(f"  {i}. {option}")
    if question.type == QuestionType.MULTIPLE_CHOICE:
        print("  (comma-separated numbers or text)")
    if question.type in (QuestionType.RATING, QuestionType.SLIDER):
        low, high = question.metadata.min, question.metadata.max
        if low is not None and high is not None:
            print(f"  ({low:g}-{high:g})")
    if view["value"] is not None:
        print(f"  Current answer: {view['value']}")


def _print_status(flow: FlowController):
    view = flow.to_dict()
    adaptive = view["adaptive"]
    print("\n--- Status ---")
    print(f"Answered: {view['progress']['current']} of {view['progress']['total']} visible")
    print(f"Adaptive score: {adaptive['normalized_score']:.2f}")
    print(f"Confidence: {adaptive['confidence']:.0%}")
    if adaptive["risk_indicator_count"]:
        print(f"Risk indicators: {adaptive['risk_indicator_count']}")
    if adaptive["should_terminate"]:
        print("Enough information gathered - you can submit now.")


def _write_json(output_dir: Path, prefix: str, payload: dict) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    filepath = output_dir / f"{prefix}-{datetime.now().strftime('%Y%m%d%H%M%S')}.json"
    filepath.write_text(json.dumps(payload, indent=2, default=str))
    return filepath


def _load(args) -> Questionnaire:
    if args.sample:
        return load_sample(args.sample)
    if not args.questionnaire:
        raise QuestionFlowError("Provide a questionnaire file or --sample")
    return load_questionnaire(args.questionnaire)


def run_interactive(args, settings: FlowSettings) -> int:
    questionnaire = _load(args)
    output_dir = Path(args.output_dir)
    saved: dict = {}

    def on_submit(responses, metadata: AdaptiveMetadata):
        saved["path"] = _write_json(output_dir, f"responses-{questionnaire.id}", {
            "questionnaire_id": questionnaire.id,
            "responses": {str(k): v for k, v in responses.items()},
            "metadata": metadata.to_dict(),
        })

    def on_save_draft(responses):
        _write_json(output_dir, f"draft-{questionnaire.id}", {
            "questionnaire_id": questionnaire.id,
            "responses": {str(k): v for k, v in responses.items()},
        })

    flow = FlowController(
        questionnaire,
        on_submit=on_submit,
        on_save_draft=on_save_draft if args.drafts else None,
        settings=settings,
    )

    print(f"\n{'='*60}")
    print(questionnaire.title)
    print(f"{'='*60}")
    if questionnaire.description:
        print(questionnaire.description)
    if questionnaire.estimated_time:
        print(f"Est. time: {questionnaire.estimated_time} min")
    print(COMMANDS)

    try:
        while flow.state != FlowState.SUBMITTED:
            question = flow.current_question
            if question is None:
                print("No questions to show.")
                break

            _print_question(flow, question)

            try:
                raw = input("\n> ")
            except KeyboardInterrupt:
                print("\n\nQuestionnaire interrupted.")
                return 1
            except EOFError:
                print("\n\nEnd of input.")
                return 1

            command = raw.strip().lower()
            if command == "quit":
                print("Questionnaire abandoned.")
                return 1
            if command == "status":
                _print_status(flow)
                continue
            if command == "back":
                if flow.previous() == StepOutcome.STAYED:
                    print("Already at the first question.")
                continue

            if command == "submit":
                outcome = flow.submit()
            else:
                if command != "next" and raw.strip():
                    try:
                        flow.answer(question.id, parse_answer(question, raw))
                    except InvalidResponseError as exc:
                        print(f"  ⚠ {exc}")
                        continue
                outcome = flow.next()
                if flow.should_end_survey and flow.state == FlowState.ANSWERING:
                    print("\nBased on your answers, no further questions are needed. Type 'submit' to finish.")

            if outcome == StepOutcome.BLOCKED:
                for question_id, message in flow.errors.items():
                    print(f"  ⚠ Question {question_id}: {message}")
            elif outcome == StepOutcome.SUBMIT_FAILED:
                print(f"  ⚠ Submission failed: {flow.last_submit_error}")
            elif outcome == StepOutcome.STAYED and command != "submit":
                print("\nThis is the last question. Type 'submit' to finish.")
    finally:
        flow.close()

    if flow.metadata is None:
        return 1

    metadata = flow.metadata
    print(f"\n{'='*60}")
    print("Questionnaire Summary")
    print(f"{'='*60}")
    print(f"Questions shown: {metadata.total_questions_shown}")
    print(f"Questions skipped: {metadata.questions_skipped}")
    print(f"Adaptive score: {metadata.adaptive_score:.2f}")
    print(f"Confidence: {metadata.confidence_level:.0%}")
    if metadata.early_termination:
        print("Completed early (confidence threshold reached)")
    print(f"\nResults saved to: {saved.get('path')}")
    print(f"{'='*60}")
    return 0


def run_evaluate(args, settings: FlowSettings) -> int:
    questionnaire = _load(args)
    raw = args.responses
    if raw and Path(raw).exists():
        raw = Path(raw).read_text()
    try:
        responses = json.loads(raw) if raw else {}
    except json.JSONDecodeError as exc:
        print(f"Error: --responses is not valid JSON ({exc})")
        return 2

    print(json.dumps(evaluate_responses(questionnaire, responses, settings.confidence_scope), indent=2))
    return 0


def run_presets(args, settings: FlowSettings) -> int:
    print("Common rule sets:\n")
    for name, rules in COMMON_RULE_SETS.items():
        print(f"  {name}")
        for rule in rules:
            print(f"     - {rule.id}")
    print("\nSample questionnaires:\n")
    for name in list_samples():
        print(f"  {name}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="questionflow",
        description="Conditional logic and adaptive termination engine for questionnaires",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    questionflow run --sample gad7_adaptive
    questionflow evaluate survey.json --responses '{"1": "Several days", "3": true}'
    questionflow presets
        """,
    )
    parser.add_argument("--env-file", default=".env", help="Optional .env file with QUESTIONFLOW_* settings")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Answer a questionnaire in the terminal")
    run_parser.add_argument("questionnaire", nargs="?", help="Questionnaire JSON file")
    run_parser.add_argument("--sample", "-s", help="Bundled sample name instead of a file")
    run_parser.add_argument("--output-dir", "-o", default="./outputs", help="Directory for results and drafts")
    run_parser.add_argument("--drafts", action="store_true", help="Auto-save drafts to the output directory")
    run_parser.set_defaults(handler=run_interactive)

    eval_parser = subparsers.add_parser("evaluate", help="Evaluate a response map without a session")
    eval_parser.add_argument("questionnaire", nargs="?", help="Questionnaire JSON file")
    eval_parser.add_argument("--sample", "-s", help="Bundled sample name instead of a file")
    eval_parser.add_argument("--responses", "-r", default="{}", help="Responses as JSON text or a JSON file path")
    eval_parser.set_defaults(handler=run_evaluate)

    presets_parser = subparsers.add_parser("presets", help="List common rule sets and samples")
    presets_parser.set_defaults(handler=run_presets)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = FlowSettings.from_env(args.env_file)
    except QuestionFlowError as exc:
        print(f"Error: {exc}")
        return 2
    configure_logging(settings.log_level)

    try:
        return args.handler(args, settings)
    except QuestionFlowError as exc:
        print(f"Error: {exc}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
