"""Main entry point for the gradecheck command-line tool."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from gradecheck.config.environment import EnvironmentConfig
from gradecheck.config.exceptions import ConfigurationError
from gradecheck.config.loader import load_config
from gradecheck.config.models import AppConfig
from gradecheck.domain.models import ComparisonReport, DocumentOrigin, IndexedField
from gradecheck.logging import get_logger
from gradecheck.logging.config import configure_logging
from gradecheck.mapping import MappingError, MappingService
from gradecheck.normalization import (
    AdmissionNormalizationService,
    NormalizationError,
    TranscriptNormalizationService,
)
from gradecheck.normalizers import build_default_registry
from gradecheck.persistence.database import close_database, init_database
from gradecheck.persistence.exceptions import PersistenceError
from gradecheck.pipeline import ReconciliationError, ReconciliationPipeline
from gradecheck.storage import FileService, LocalBlobStore, StorageError

logger = get_logger(__name__, component="cli")


@dataclass
class Services:
    """Services shared by every sub-command."""

    files: FileService
    admission: AdmissionNormalizationService
    transcript: TranscriptNormalizationService
    mapping: MappingService
    pipeline: ReconciliationPipeline


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load and prepare runtime configuration.

    Args:
        config_path: Path to configuration file (None searches the default locations)
        log_level_override: Log level from CLI (takes precedence)

    Returns:
        Tuple of (AppConfig, EnvironmentConfig) with the effective log level resolved

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path, allow_missing=config_path is None)

    # Log level priority: CLI > Environment > Config
    if log_level_override:
        env_config.log_level = log_level_override
    elif env_config.log_level:
        pass
    elif app_config.logging and app_config.logging.level:
        env_config.log_level = app_config.logging.level
    else:
        env_config.log_level = "INFO"

    return app_config, env_config


def build_services(app_config: AppConfig) -> Services:
    """Wire the services from configuration. The database must be initialized."""
    file_service = FileService(LocalBlobStore(app_config.storage.blob_dir))
    admission = AdmissionNormalizationService(file_service)
    transcript = TranscriptNormalizationService(
        file_service,
        registry=build_default_registry(app_config.normalizers.enabled_dialects),
    )
    return Services(
        files=file_service,
        admission=admission,
        transcript=transcript,
        mapping=MappingService(),
        pipeline=ReconciliationPipeline(app_config, admission, transcript),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gradecheck",
        description="gradecheck - Verify grades declared in admission files against institution transcripts",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml if present, else built-in defaults)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    register = subparsers.add_parser("register", help="Register a document")
    register.add_argument("path", type=Path, help="Spreadsheet (.xlsx) or transcript export (.xml)")
    register.add_argument(
        "--origin",
        required=True,
        choices=[origin.value for origin in DocumentOrigin],
        help="admission for candidate spreadsheets, transcript for institution exports",
    )
    register.add_argument("--institution", default=None, help="Issuing institution")
    register.add_argument("--academic-year", default=None, help="Academic year covered, e.g. 2023-2024")

    normalize_admission = subparsers.add_parser(
        "normalize-admission", help="Normalize a registered admission spreadsheet"
    )
    normalize_admission.add_argument("file_id", type=int)

    normalize_transcript = subparsers.add_parser(
        "normalize-transcript", help="Normalize a registered transcript export"
    )
    normalize_transcript.add_argument("file_id", type=int)

    fields = subparsers.add_parser("fields", help="List the indexed fields of a normalized file")
    fields.add_argument("file_id", type=int)

    mapping = subparsers.add_parser("map", help="Show or edit the field mapping of a file pair")
    mapping.add_argument("admission_file_id", type=int)
    mapping.add_argument("transcript_file_id", type=int)
    mapping.add_argument(
        "--add",
        nargs=2,
        type=int,
        action="append",
        default=[],
        metavar=("ADMISSION_INDEX", "TRANSCRIPT_INDEX"),
        help="Map an admission field to a transcript field (repeatable)",
    )
    mapping.add_argument("--delete", type=int, action="append", default=[], metavar="ENTRY_ID")
    mapping.add_argument("--clear", action="store_true", help="Remove every entry first")

    reconcile = subparsers.add_parser("reconcile", help="Match candidates and verify their grades")
    reconcile.add_argument("admission_file_id", type=int)
    reconcile.add_argument("transcript_file_id", type=int)

    report = subparsers.add_parser("report", help="Show stored comparison reports")
    report.add_argument("admission_file_id", type=int, nargs="?")
    report.add_argument("transcript_file_id", type=int, nargs="?")
    report.add_argument("--match", type=int, default=None, help="Show a single match")
    report.add_argument("--candidate", type=int, default=None, help="Show every match of a candidate")

    return parser


def cmd_register(args: argparse.Namespace, services: Services) -> int:
    source_file = services.files.register_file(
        args.path,
        DocumentOrigin(args.origin),
        institution=args.institution,
        academic_year=args.academic_year,
    )
    print(f"Registered {source_file.file_name} as file {source_file.file_id} ({args.origin})")
    return 0


def cmd_normalize_admission(args: argparse.Namespace, services: Services) -> int:
    summary = services.admission.normalize_file(args.file_id)
    print(
        f"File {summary.file_id}: {summary.candidates_count} candidates, "
        f"{summary.academic_records_count} academic records, {summary.scores_count} scores"
    )
    return 0


def cmd_normalize_transcript(args: argparse.Namespace, services: Services) -> int:
    summary = services.transcript.normalize_file(args.file_id)
    print(f"File {summary.file_id}: {summary.students_count} students ({summary.dialect})")
    return 0


def _available_fields(services: Services, file_id: int) -> List[IndexedField]:
    source_file = services.files.get_file(file_id)
    if source_file is None:
        raise StorageError(f"File {file_id} not found")
    if DocumentOrigin(source_file.origin) == DocumentOrigin.ADMISSION:
        return services.admission.get_available_fields(file_id)
    return services.transcript.get_available_fields(file_id)


def cmd_fields(args: argparse.Namespace, services: Services) -> int:
    for field in _available_fields(services, args.file_id):
        print(f"{field.index:>3}  {field.name:<40} {field.label}")
    return 0


def cmd_map(args: argparse.Namespace, services: Services) -> int:
    if args.clear:
        services.mapping.clear(args.admission_file_id, args.transcript_file_id)

    for entry_id in args.delete:
        if not services.mapping.delete_entry(entry_id):
            print(f"Mapping entry {entry_id} not found", file=sys.stderr)
            return 1

    if args.add:
        admission_fields = {f.index: f for f in _available_fields(services, args.admission_file_id)}
        transcript_fields = {f.index: f for f in _available_fields(services, args.transcript_file_id)}
        for admission_index, transcript_index in args.add:
            if admission_index not in admission_fields:
                raise MappingError(f"Admission file has no field {admission_index}", side="admission")
            if transcript_index not in transcript_fields:
                raise MappingError(f"Transcript file has no field {transcript_index}", side="transcript")
            services.mapping.add_entry(
                args.admission_file_id,
                args.transcript_file_id,
                admission_index,
                admission_fields[admission_index].name,
                transcript_index,
                transcript_fields[transcript_index].name,
            )

    for entry in services.mapping.get_entries(args.admission_file_id, args.transcript_file_id):
        print(
            f"[{entry.entry_id}] {entry.admission_column_index}:{entry.admission_column_name} -> "
            f"{entry.transcript_column_index}:{entry.transcript_column_name}"
        )
    return 0


def cmd_reconcile(args: argparse.Namespace, services: Services) -> int:
    result = services.pipeline.reconcile(args.admission_file_id, args.transcript_file_id)
    for outcome in result.outcomes:
        print(
            f"candidate {outcome.candidate_id} -> student {outcome.transcript_student_id}  "
            f"match={outcome.match_score:.2f}  similarity={outcome.similarity:.2f}  {outcome.status.value}"
        )
    counts = ", ".join(f"{status}={count}" for status, count in result.status_counts().items())
    print(
        f"{result.matched_count}/{result.candidates_count} candidates matched, "
        f"{len(result.unmatched_candidate_ids)} unmatched ({counts})"
    )
    return 0


def _print_report(report: ComparisonReport) -> None:
    candidate = report.candidate.full_name if report.candidate else "?"
    student = report.student.name if report.student else "?"
    if report.summary is None:
        print(f"match {report.match.match_id}: {candidate} <-> {student}  (not compared)")
        return
    print(
        f"match {report.match.match_id}: {candidate} <-> {student}  "
        f"{report.summary.status.value} ({report.summary.average_similarity:.2f})"
    )
    for field in report.fields:
        print(
            f"    {field.field_name}: {field.admission_value} vs {field.transcript_value}  "
            f"{field.similarity:.2f} {field.status.value}"
        )


def cmd_report(args: argparse.Namespace, services: Services) -> int:
    if args.match is not None:
        report = services.pipeline.get_report(args.match)
        if report is None:
            print(f"Match {args.match} not found", file=sys.stderr)
            return 1
        reports = [report]
    elif args.candidate is not None:
        reports = services.pipeline.get_reports_for_candidate(args.candidate)
    elif args.admission_file_id is not None and args.transcript_file_id is not None:
        reports = services.pipeline.get_reports(args.admission_file_id, args.transcript_file_id)
    else:
        print("report needs a file pair, --match or --candidate", file=sys.stderr)
        return 1

    for report in reports:
        _print_report(report)
    return 0


COMMANDS = {
    "register": cmd_register,
    "normalize-admission": cmd_normalize_admission,
    "normalize-transcript": cmd_normalize_transcript,
    "fields": cmd_fields,
    "map": cmd_map,
    "reconcile": cmd_reconcile,
    "report": cmd_report,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for gradecheck.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    try:
        # Step 1: Load configuration early (before logging for format detection)
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        # Step 2: Configure logging
        log_format = app_config.logging.format if app_config.logging else "key-value"
        configure_logging(
            level=env_config.log_level, format_type=log_format, environment=env_config.environment
        )

        logger.info(
            "gradecheck starting",
            extra={
                "event": "service.starting",
                "command": args.command,
                "log_level": env_config.log_level,
            },
        )

        # Step 3: Initialize database
        init_database(env_config.database_url)

        # Step 4: Run the command
        try:
            services = build_services(app_config)
            exit_code = COMMANDS[args.command](args, services)
        finally:
            close_database()

        logger.info(
            "gradecheck finished",
            extra={
                "event": "service.stopping",
                "command": args.command,
                "exit_code": exit_code,
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )
        return exit_code

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1
    except (NormalizationError, ReconciliationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.error(
            str(e),
            extra={"event": "command.failed", "command": args.command, "code": e.code.value},
        )
        return 1
    except (MappingError, StorageError, PersistenceError) as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.error(
            str(e),
            extra={"event": "command.failed", "command": args.command, "error_type": type(e).__name__},
        )
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error",
            extra={
                "event": "service.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
