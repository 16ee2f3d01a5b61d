"""
CLI for the cohort debrief dashboard.

Builds the instructor dashboard for one case and displays a summary.

Usage:
    python -m cli.run_dashboard [fixture_json] [--case-id CASE_ID] [--output-dir OUTPUT_DIR]

Arguments:
    fixture_json    JSON file with {case, submissions, total_students, notes,
                    sentiments, captures} (optional)
                    Default: tests/fixtures/chest_pain_case.json
    --case-id       Read the case from the database (DATABASE_URL) instead
    --output-dir    Directory to save output files (optional)

Examples:
    # Use the bundled fixture
    python -m cli.run_dashboard

    # Live case, export results
    python -m cli.run_dashboard --case-id 3f1c2a4e-... --output-dir results/

Output:
    - Console summary of the dashboard
    - With --output-dir:
        * dashboard_TIMESTAMP.json
        * diagnosis_frequency_TIMESTAMP.csv
        * cant_miss_TIMESTAMP.csv

Exit status: 0 on success, 2 for a bad case id, 1 for any other failure.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import argparse
import asyncio
import json
import logging
from datetime import datetime
from typing import Optional

import asyncpg
import pandas as pd

from debrief.config.settings import load_config
from debrief.errors import DebriefError
from debrief.models.aggregation import DashboardReport
from debrief.models.case import CaseRecord, Sentiment, SessionCapture, Submission
from debrief.orchestrator import DebriefEngine, generate_dashboard
from debrief.tools.cohort import CohortTools

logger = logging.getLogger(__name__)

DEFAULT_FIXTURE = 'tests/fixtures/chest_pain_case.json'


def load_fixture(path: Path, engine: DebriefEngine) -> DashboardReport:
    """Build a report from a JSON fixture of already-fetched rows."""
    with open(path, encoding='utf-8') as f:
        data = json.load(f)

    return engine.build_report(
        case=CaseRecord.model_validate(data['case']),
        submissions=[Submission.model_validate(s) for s in data.get('submissions', [])],
        total_students=int(data.get('total_students', 0)),
        notes=data.get('notes', []),
        sentiments=[Sentiment.model_validate(s) for s in data.get('sentiments', [])],
        captures=[SessionCapture.model_validate(c) for c in data.get('captures', [])],
    )


async def load_from_database(database_url: str, case_id: str, engine: DebriefEngine) -> DashboardReport:
    pool = await asyncpg.create_pool(dsn=database_url, min_size=1, max_size=5)
    try:
        return await generate_dashboard(CohortTools(pool), case_id, engine)
    finally:
        await pool.close()


def print_summary(report: DashboardReport) -> None:
    print("\n" + "="*70)
    print("📊 COHORT DASHBOARD")
    print("="*70 + "\n")

    print(f"Submitted:             {report.submission_count} of {report.total_students} students")
    rate = f"{report.cant_miss_rate}%" if report.cant_miss_rate is not None else "no data"
    print(f"Can't-miss rate:       {rate}")
    s = report.sentiment_summary
    print(f"Sentiment:             {s.confident} confident, {s.uncertain} uncertain, {s.lost} lost")

    print("\nTop diagnoses:")
    if not report.diagnosis_frequency:
        print("  (none)")
    for d in report.diagnosis_frequency[:10]:
        print(f"  {d.count:>3}  {d.diagnosis}")

    print("\nVINDICATE coverage:")
    for cat, count in report.vindicate_coverage.items():
        print(f"  {cat:<3} {count}")
    if report.vindicate_gaps:
        print(f"  Gaps: {', '.join(report.vindicate_gaps)}")

    if report.cant_miss_details:
        print("\nCan't-miss diagnoses:")
        for c in report.cant_miss_details:
            print(f"  {c.hit_count}/{c.total}  {c.diagnosis}")

    if report.unconsidered_diagnoses:
        print(f"\nNobody considered:     {', '.join(report.unconsidered_diagnoses)}")

    print("\n" + "="*70)
    print("🎯 SUGGESTED FOCUS")
    print("="*70 + "\n")
    if not report.suggested_focus:
        print("  Nothing flagged")
    for i, item in enumerate(report.suggested_focus, 1):
        print(f"  {i}. {item}")

    if report.topic_votes:
        print("\nTopic votes:")
        for topic, count in report.topic_votes.items():
            print(f"  {count:>3}  {topic}")

    if report.flagged_questions:
        print(f"\nQuestions for instructor: {len(report.flagged_questions)}")
        for q in report.flagged_questions[:5]:
            print(f"  - {q.content[:100]}")

    c = report.calibration_summary
    print(
        f"\nCalibration:           {c.well_calibrated} well calibrated, "
        f"{c.overconfident} overconfident, {c.underconfident} underconfident"
    )


def export_report(report: DashboardReport, output_dir: Path) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    print("\n" + "="*70)
    print("💾 EXPORTING RESULTS")
    print("="*70 + "\n")

    payload_file = output_dir / f'dashboard_{timestamp}.json'
    with open(payload_file, 'w', encoding='utf-8') as f:
        json.dump(report.to_payload(), f, indent=2)
    print(f"✅ Dashboard payload exported to: {payload_file}")

    freq_file = output_dir / f'diagnosis_frequency_{timestamp}.csv'
    freq_df = pd.DataFrame(
        [d.model_dump() for d in report.diagnosis_frequency],
        columns=['diagnosis', 'count'],
    )
    freq_df.to_csv(freq_file, index=False)
    print(f"✅ Diagnosis frequency exported to: {freq_file}")

    cant_miss_file = output_dir / f'cant_miss_{timestamp}.csv'
    cm_df = pd.DataFrame(
        [c.model_dump() for c in report.cant_miss_details],
        columns=['diagnosis', 'hit_count', 'total'],
    )
    cm_df['hit_pct'] = (cm_df['hit_count'] / cm_df['total'].where(cm_df['total'] > 0)).mul(100).round()
    cm_df.to_csv(cant_miss_file, index=False)
    print(f"✅ Can't-miss detail exported to: {cant_miss_file}\n")


def run(fixture: Path, case_id: Optional[str], output_dir: Optional[Path]) -> int:
    config = load_config()
    engine = DebriefEngine(config)

    try:
        if case_id is not None:
            if not config.database_url:
                print("❌ Error: DATABASE_URL not set in environment or .env")
                return 1
            report = asyncio.run(load_from_database(config.database_url, case_id, engine))
        else:
            if not fixture.exists():
                print(f"❌ Error: Fixture not found at {fixture}")
                return 1
            print(f"📂 Loading fixture: {fixture}")
            report = load_fixture(fixture, engine)
    except DebriefError as e:
        print(f"\n❌ {e.detail}")
        return 2 if e.is_client_error else 1

    print_summary(report)
    if output_dir is not None:
        export_report(report, output_dir)
    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Build the cohort debrief dashboard for a case',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        'fixture_json',
        nargs='?',
        type=str,
        default=DEFAULT_FIXTURE,
        help=f'JSON fixture of case rows (default: {DEFAULT_FIXTURE})'
    )
    parser.add_argument(
        '--case-id',
        type=str,
        default=None,
        help='Load this case from the database instead of a fixture'
    )
    parser.add_argument(
        '--output-dir',
        type=str,
        default=None,
        help='Directory to save output files'
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=load_config().log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    fixture = Path(args.fixture_json)
    if not fixture.is_absolute():
        fixture = project_root / fixture

    output_dir = None
    if args.output_dir:
        output_dir = Path(args.output_dir)
        if not output_dir.is_absolute():
            output_dir = project_root / output_dir

    try:
        sys.exit(run(fixture, args.case_id, output_dir))
    except KeyboardInterrupt:
        print("\n\n⚠️  Interrupted by user")
        sys.exit(1)


if __name__ == "__main__":
    main()
