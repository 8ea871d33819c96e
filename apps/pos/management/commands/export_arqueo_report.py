from __future__ import annotations

from pathlib import Path

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from apps.pos.services.pdf_export import ExportError
from apps.pos.services.provider import FetchError
from apps.pos.services.reconciliations import get_reconciliation
from apps.pos.services.report import build_report
from apps.pos.services.report_writer import write_report_bundle


class Command(BaseCommand):
    help = "Write the PDF report and JSON summary of one reconciliation (arqueo) to disk."

    def add_arguments(self, parser):
        parser.add_argument("reconciliation_id", type=int)
        parser.add_argument("--out-dir", default=None, help="Defaults to POS_REPORTS_DIR.")

    def handle(self, *args, **options):
        reconciliation_id = options["reconciliation_id"]
        out_dir = Path(options["out_dir"] or getattr(settings, "POS_REPORTS_DIR", "reports"))
        try:
            report = build_report(get_reconciliation(reconciliation_id))
            paths = write_report_bundle(report, out_dir)
        except FetchError as exc:
            raise CommandError(f"Could not load reconciliation {reconciliation_id}: {exc}") from exc
        except ExportError as exc:
            raise CommandError(f"Could not export reconciliation {reconciliation_id}: {exc}") from exc
        self.stdout.write(self.style.SUCCESS(f"Wrote {paths['pdf']} and {paths['summary']}."))
