"""Main entry point for Job Match."""

import argparse
import asyncio
import json
import sys
from datetime import UTC, datetime
from pathlib import Path

from pydantic import ValidationError

from src import __version__
from src.config.settings import Settings, get_settings
from src.utils.logging import configure_logging


def _weights(value: str) -> dict[str, float]:
    parts = [part.strip() for part in value.split(",")]
    if len(parts) != 4:
        raise argparse.ArgumentTypeError(
            "--weights takes four comma-separated numbers: semantic,skills,experience,other"
        )
    try:
        semantic, skills, experience, other = (float(part) for part in parts)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"--weights must be numeric: {value}") from e
    return {
        "semantic": semantic,
        "skills": skills,
        "experience": experience,
        "other": other,
    }


def _min_score(value: str) -> int:
    score = int(value)
    if not (0 <= score <= 100):
        raise argparse.ArgumentTypeError("--min-score must be between 0 and 100")
    return score


def _timestamp_run_id(prefix: str) -> str:
    timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{timestamp}"


def _resolve_run_dir(
    settings: Settings, *, prefix: str, out_run_dir: Path | None
) -> Path:
    if out_run_dir is not None:
        run_dir = out_run_dir
    else:
        run_dir = settings.output_dir / "runs" / _timestamp_run_id(prefix)
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def _write_json(path: Path, payload: object) -> None:
    def _default(value: object):
        to_dict = getattr(value, "to_dict", None)
        if callable(to_dict):
            return to_dict()
        return str(value)

    path.write_text(
        json.dumps(payload, indent=2, default=_default),
        encoding="utf-8",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="job-match",
        description="Job Match: job-candidate compatibility scoring",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m src match --job job.yaml --candidate candidate.yaml
  python -m src batch --jobs jobs.yaml --candidate candidate.yaml --min-score 60
  python -m src skills "ReactJS" "postgres" "Python Programming"
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Set the log level (overrides settings)",
    )

    subparsers = parser.add_subparsers(
        dest="mode",
        title="modes",
        description="Available commands",
    )

    match_parser = subparsers.add_parser(
        "match",
        help="Score one job against a candidate profile",
    )
    match_parser.add_argument(
        "--job", type=Path, required=True, help="Path to job (YAML or JSON)"
    )
    match_parser.add_argument(
        "--candidate",
        type=Path,
        required=True,
        help="Path to candidate profile (YAML or JSON)",
    )
    match_parser.add_argument(
        "--weights",
        type=_weights,
        default=None,
        help="Override weights as semantic,skills,experience,other (must sum to 1)",
    )
    match_parser.add_argument(
        "--normalize-weights",
        action="store_true",
        help="Rescale --weights to sum to 1 instead of rejecting them",
    )
    match_parser.add_argument(
        "--out-run-dir",
        type=Path,
        default=None,
        help="Optional output run directory (defaults under artifacts/runs/)",
    )

    batch_parser = subparsers.add_parser(
        "batch",
        help="Score many jobs for a candidate, serving cached scores first",
    )
    batch_parser.add_argument(
        "--jobs", type=Path, required=True, help="Path to a list of jobs (YAML or JSON)"
    )
    batch_parser.add_argument(
        "--candidate",
        type=Path,
        required=True,
        help="Path to candidate profile (YAML or JSON)",
    )
    batch_parser.add_argument(
        "--job-id",
        action="append",
        dest="job_ids",
        default=None,
        help="Job id to score (repeatable; defaults to every job in --jobs)",
    )
    batch_parser.add_argument(
        "--min-score",
        type=_min_score,
        default=None,
        help="Drop matches below this overall score (0-100)",
    )
    batch_parser.add_argument(
        "--include-inactive",
        action="store_true",
        help="Also score inactive and archived jobs",
    )
    batch_parser.add_argument(
        "--out-run-dir",
        type=Path,
        default=None,
        help="Optional output run directory (defaults under artifacts/runs/)",
    )

    skills_parser = subparsers.add_parser(
        "skills",
        help="Normalize skill names",
    )
    skills_parser.add_argument("skills", nargs="+", help="Skill names to normalize")

    return parser


def _build_embedding_source(settings: Settings):
    from src.matching.embeddings import StaticJobEmbeddings, UnavailableJobEmbeddings

    if settings.job_embeddings_path is None:
        return UnavailableJobEmbeddings()
    return StaticJobEmbeddings.from_json_file(settings.job_embeddings_path)


def _build_options(parsed: argparse.Namespace):
    from src.matching.models import MatchingOptions, MatchWeights

    weights = None
    raw_weights = getattr(parsed, "weights", None)
    if raw_weights is not None:
        if getattr(parsed, "normalize_weights", False):
            weights = MatchWeights.normalized(**raw_weights)
        else:
            weights = MatchWeights(**raw_weights)

    return MatchingOptions(
        weights=weights,
        min_score=getattr(parsed, "min_score", None),
        include_inactive=getattr(parsed, "include_inactive", False),
    )


async def _run_batch(service, candidate, job_ids, options):
    try:
        return await service.score_jobs(candidate, job_ids, options)
    finally:
        close = getattr(service.cache, "close", None)
        if callable(close):
            await close()


def main(args: list[str] | None = None) -> int:
    """Main entry point for the application.

    Args:
        args: Command line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    logger = configure_logging(level=settings.resolve_log_level(parsed.log_level))

    if parsed.mode is None:
        parser.print_help()
        return 0

    logger.info(f"Job Match v{__version__} running {parsed.mode}")

    if parsed.mode == "skills":
        from src.matching.skills import get_skill_normalizer

        normalizer = get_skill_normalizer()
        for normalized in normalizer.normalize_skills(parsed.skills):
            print(
                f"{normalized.original} -> {normalized.normalized or '(empty)'} "
                f"(category={normalized.category}, confidence={normalized.confidence:.1f})"
            )
        return 0

    if parsed.mode == "match":
        from src.matching.engine import MatchingEngine, format_match
        from src.matching.profile import ProfileService

        try:
            profile_service = ProfileService()
            job = profile_service.load_job(parsed.job)
            candidate = profile_service.load_candidate(parsed.candidate)
            options = _build_options(parsed)
            engine = MatchingEngine(embedding_source=_build_embedding_source(settings))
        except (FileNotFoundError, ValueError, ValidationError) as e:
            logger.error(f"Could not prepare match: {e}")
            return 1

        for warning in profile_service.validate_profile(candidate):
            logger.warning(f"Profile: {warning}")

        result = asyncio.run(engine.calculate_match(job, candidate, options))
        if result.error is not None:
            logger.error(f"{result.error.code}: {result.error.message}")
            return 1

        match = result.unwrap()
        print(format_match(match))

        run_dir = _resolve_run_dir(
            settings,
            prefix="match",
            out_run_dir=getattr(parsed, "out_run_dir", None),
        )
        output_path = run_dir / "match.json"
        _write_json(output_path, match)
        print(f"Wrote: {output_path}")
        return 0

    if parsed.mode == "batch":
        from src.matching.batch import BatchMatchService, InMemoryJobSource
        from src.matching.cache import create_match_cache
        from src.matching.engine import MatchingEngine
        from src.matching.profile import ProfileService

        try:
            profile_service = ProfileService()
            jobs = profile_service.load_jobs(parsed.jobs)
            candidate = profile_service.load_candidate(parsed.candidate)
            options = _build_options(parsed)
            service = BatchMatchService(
                engine=MatchingEngine(embedding_source=_build_embedding_source(settings)),
                cache=create_match_cache(),
                job_source=InMemoryJobSource(jobs),
            )
        except (FileNotFoundError, ValueError, ValidationError) as e:
            logger.error(f"Could not prepare batch: {e}")
            return 1

        job_ids = parsed.job_ids or [job.id for job in jobs]
        try:
            batch = asyncio.run(_run_batch(service, candidate, job_ids, options))
        except ValueError as e:
            logger.error(f"Invalid batch request: {e}")
            return 1

        for item in batch.matches:
            source = "cached" if item.cached else "calculated"
            print(
                f"{item.job_id}: {item.match.score.overall} "
                f"(confidence={item.match.score.confidence:.2f}, {source})"
            )
        for job_id in batch.failed_job_ids:
            print(f"{job_id}: not scored")
        stats = batch.stats
        print(
            f"Total: {stats.total} | cached: {stats.cached} | "
            f"calculated: {stats.calculated} | failed: {stats.failed} | "
            f"{stats.processing_time_ms:.0f} ms"
        )

        run_dir = _resolve_run_dir(
            settings,
            prefix="batch",
            out_run_dir=getattr(parsed, "out_run_dir", None),
        )
        output_path = run_dir / "batch.json"
        _write_json(output_path, batch)
        print(f"Wrote: {output_path}")
        return 0

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
