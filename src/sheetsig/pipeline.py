"""
Sheet processing for sheetsig.

Each system of a sheet goes through glyph inspection (compounds), alteration
sign verification and ledger retrieval. Systems are independent and processed
in parallel; a failure in one system is reported without affecting the others.
"""

from concurrent.futures import ThreadPoolExecutor

from sheetsig.config import load_config
from sheetsig.glyphs.evaluator import get_evaluator
from sheetsig.glyphs.inspector import GlyphInspector
from sheetsig.models import SheetReport, SystemReport
from sheetsig.sheet.ledgers.builder import LedgersBuilder
from sheetsig.tracer import get_tracer, trace


def process_system(system, config, evaluator):
    """
    Run all steps on one system.

    Returns:
        SystemReport, flagged as failed if a step raised
    """
    tracer = get_tracer()
    report = SystemReport(system_id=system.system_id)

    try:
        with tracer.span(f"system_{system.system_id}", module="pipeline"):
            inspector = GlyphInspector(system, evaluator, config)

            compounds = inspector.inspect_glyphs(inspector.symbol_max_doubt)
            report.compounds = [g.glyph_id for g in compounds]

            report.alter_fixes = inspector.verify_alter_signs()

            ledgers = LedgersBuilder(system, config).build_ledgers()
            report.ledgers = {staff_id: dict(counts) for staff_id, counts in ledgers.items()}

    except Exception as e:
        tracer.event(
            f"System #{system.system_id} failed: {type(e).__name__}: {e}",
            level="ERROR",
        )
        report.failed = True
        report.error = f"{type(e).__name__}: {e}"

    return report


@trace(label="process_sheet")
def process_sheet(sheet, config=None, evaluator=None, config_path=None):
    """
    Process every system of a sheet.

    Args:
        sheet: Sheet with its systems
        config: PipelineConfig object (optional)
        evaluator: shape evaluator (optional, built from config otherwise)
        config_path: path to YAML config file (optional)

    Returns:
        SheetReport with one entry per system, in system order
    """
    tracer = get_tracer()

    if config is None:
        config = load_config(config_path)

    if evaluator is None:
        evaluator = get_evaluator(config)

    workers = max(1, min(config.runtime.max_workers, len(sheet.systems) or 1))

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="system") as executor:
        futures = [executor.submit(process_system, system, config, evaluator) for system in sheet.systems]
        reports = [future.result() for future in futures]

    report = SheetReport(sheet_id=sheet.sheet_id, systems=reports)

    tracer.event(
        f"Sheet {sheet.sheet_id} complete: {len(reports)} systems",
        failed=report.failed_systems,
        compounds=sum(len(r.compounds) for r in reports),
        ledgers=sum(r.ledger_count for r in reports),
    )

    return report
