"""Write a reconciliation report bundle (PDF plus summary JSON) to disk."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from .pdf_export import export_report_pdf
from .report import ArqueoReport, report_summary


def summary_filename(report: ArqueoReport) -> str:
    return f"arqueo-{report.record.reconciliation_id}-summary.json"


def write_report_summary(summary: Dict[str, Any], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2, ensure_ascii=False)


def write_report_bundle(report: ArqueoReport, out_dir: Path) -> Dict[str, Path]:
    """Write ``arqueo-<id>.pdf`` and ``arqueo-<id>-summary.json``; return both paths."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    document = export_report_pdf(report)
    pdf_path = out_dir / document.filename
    pdf_path.write_bytes(document.content)
    summary_path = out_dir / summary_filename(report)
    write_report_summary(report_summary(report), summary_path)
    return {"pdf": pdf_path, "summary": summary_path}
