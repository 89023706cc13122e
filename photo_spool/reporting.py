import csv
import logging
from pathlib import Path

from .models import RunSummary, SpoolStatus

REPORT_FIELDS = ['source', 'status', 'destination', 'fingerprint', 'error_kind', 'message']


class ReportGenerator:
    def __init__(self, summary: RunSummary):
        self.summary = summary

    def log_summary(self):
        """One line per status plus one line per failed file."""
        counts = self.summary.counts
        logging.info("--- Spool summary ---")
        for status in SpoolStatus:
            if counts.get(status):
                logging.info(f"  {status.value:<12} {counts[status]}")
        for res in self.summary.failures:
            if res.error is not None:
                logging.warning(f"  {res.source}: [{res.error.kind.value}] {res.error}")
        if self.summary.walk_error:
            logging.error(f"Walk error: {self.summary.walk_error}")
        if self.summary.close_error:
            logging.error(f"Index error: {self.summary.close_error}")

    def write_csv(self, output_csv: Path):
        """Writes one row per file the run looked at."""
        logging.info(f"Writing report to {output_csv}")
        with open(output_csv, 'w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=REPORT_FIELDS)
            writer.writeheader()
            for res in sorted(self.summary.results, key=lambda r: str(r.source)):
                writer.writerow({
                    'source': str(res.source),
                    'status': res.status.value,
                    'destination': str(res.destination) if res.destination else '',
                    'fingerprint': res.fingerprint or '',
                    'error_kind': res.error.kind.value if res.error else '',
                    'message': str(res.error) if res.error else '',
                })
