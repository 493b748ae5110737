"""Main entry point for Data Detective"""

import asyncio
import argparse
import logging
from pathlib import Path

from core.models import ConnectionConfig, ProjectForm
from core.enums import SourceKind, SourceStatus, WizardStep
from core.exceptions import DetectiveError
from db import JsonProjectStore
from ingestion import IngestionPipelineManager, SAMPLE_DATASETS
from orchestrator import ProjectFlowManager
from stages.s3_analysis import AnalysisOrchestrator, AnalysisCache, build_engine
from ui.progress import ConsoleProgress
from ui.prompts import ConsolePrompt
from config import settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Data Detective - Answer research questions from your data"
    )
    parser.add_argument("files", type=Path, nargs="*", help="CSV, JSON, TXT, XLSX or XLS files")
    parser.add_argument("--question", "-q", help="Research question to investigate")
    parser.add_argument("--context", default="", help="Business context for the analysis")
    parser.add_argument("--project", default="", help="Project name")
    parser.add_argument("--educational", action="store_true", help="Include a step-by-step query breakdown")
    parser.add_argument("--paste-file", type=Path, help="Treat this file's text as pasted data")
    parser.add_argument("--sample", choices=sorted(SAMPLE_DATASETS), help="Add a bundled sample dataset")
    parser.add_argument("--interactive", action="store_true", help="Confirm the column mapping")
    parser.add_argument("--save", action="store_true", help="Save the project before analysis")
    parser.add_argument("--continue-project", metavar="PROJECT_ID", help="Reload a saved project's data")
    parser.add_argument(
        "--engine",
        choices=["heuristic", "llm"],
        default=settings.ANALYSIS_ENGINE,
        help="Analysis engine"
    )
    parser.add_argument("--log-level", default=settings.LOG_LEVEL, help="Logging level")
    return parser


async def run(args: argparse.Namespace) -> int:
    store = JsonProjectStore() if (args.save or args.continue_project) else None
    flow = ProjectFlowManager(
        ingestion=IngestionPipelineManager(),
        analysis=AnalysisOrchestrator(
            engine=build_engine(args.engine),
            progress=ConsoleProgress(),
            cache=AnalysisCache()
        ),
        store=store,
        prompt=ConsolePrompt() if args.interactive else None
    )

    form = ProjectForm(
        project_name=args.project,
        research_question=args.question or "",
        business_context=args.context,
        educational_mode=args.educational
    )

    if args.continue_project:
        restored = await flow.continue_project(args.continue_project)
        form = restored.model_copy(update={
            "research_question": args.question or restored.research_question,
            "business_context": args.context or restored.business_context,
            "educational_mode": args.educational,
        })

    for path in args.files:
        await flow.ingestion.add_file_path(path)
    if args.paste_file:
        await flow.ingestion.add_pasted_source(args.paste_file.read_text(encoding="utf-8"))
    if args.sample:
        await flow.ingestion.add_mock_connection_source(
            ConnectionConfig(type=args.sample, kind=SourceKind.PLATFORM)
        )

    print_sources(flow.ingestion)

    for step in (WizardStep.RESEARCH_QUESTION, WizardStep.DATA_SOURCE, WizardStep.BUSINESS_CONTEXT):
        errors = flow.check_step(step, form)
        if errors:
            for error in errors:
                print(f"✗ {error}")
            return 1

    result = await flow.execute_full_analysis(
        question=form.research_question,
        additional_context=form.business_context,
        educational_mode=form.educational_mode,
        project_name=form.project_name if args.save else ""
    )
    if result is None:
        return 1

    print()
    print(result.insights)
    print(f"\nConfidence: {result.confidence}")
    if result.recommendations:
        print("\nRecommendations:")
        for recommendation in result.recommendations:
            print(f"  - {recommendation}")
    if result.sql_query:
        print(f"\nSQL:\n{result.sql_query}")
    if result.query_breakdown:
        print("\nQuery breakdown:")
        for step in result.query_breakdown:
            print(f"  {step.step}. {step.title}: {step.description}")
            if step.sql:
                print(f"     {step.sql}")
    if flow.state.saved_project:
        print(f"\nSaved project: {flow.state.saved_project.id} ({flow.state.saved_project.path})")
    return 0


def print_sources(ingestion: IngestionPipelineManager):
    for source in ingestion.sources:
        if source.status == SourceStatus.COMPLETED:
            verdict = ingestion.get_validation(source.id)
            print(
                f"[✓] {source.name}: {source.result.row_count} rows, "
                f"{source.result.column_count} columns, confidence {verdict.confidence.value}"
            )
            for warning in verdict.warnings:
                print(f"    ! {warning}")
        else:
            print(f"[✗] {source.name}: {source.error}")


def main():
    parser = build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )

    if not args.question and not args.continue_project:
        parser.error("--question is required unless --continue-project is given")

    try:
        return asyncio.run(run(args))
    except DetectiveError as e:
        print(f"\n✗ Analysis failed: {e}")
        return 1


if __name__ == "__main__":
    exit(main())
