"""Plain-text extraction reports for permit review.

One report is written per scan attempt. Reports are never read back by the
application; they exist so a human reviewer can correct a failed extraction
from the raw text.
"""

from datetime import datetime
import logging
from pathlib import Path
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .ocr_service import PermitScanResult

logger = logging.getLogger(__name__)


def humanize_field_name(key: str) -> str:
    """Turn a camelCase key into a label: ``businessIdNo`` -> ``Business Id No``."""
    spaced = re.sub(r"([A-Z])", r" \1", key).strip()
    return spaced[:1].upper() + spaced[1:]


def report_file_name(processed_at: datetime) -> str:
    timestamp = processed_at.isoformat().replace(":", "-").replace(".", "-")
    return f"ocr_results_{timestamp}.txt"


def format_report(result: "PermitScanResult", file_name: str, processed_at: datetime) -> str:
    """Render a scan result as a human-readable report.

    Only non-empty fields are listed. The raw recognized text is always included,
    even when nothing could be extracted.
    """
    lines = [
        "OCR RESULTS",
        "===========",
        "",
        f"File: {file_name}",
        f"Processed on: {processed_at.strftime('%Y-%m-%d %H:%M:%S')}",
        f"Success: {result.success}",
        f"Confidence: {result.confidence or 'N/A'}",
        "",
    ]

    if result.processing_steps:
        lines += ["PREPROCESSING STEPS:", "-------------------"]
        for index, step in enumerate(result.processing_steps, 1):
            elapsed = f"{step.processing_time_ms}ms" if step.processing_time_ms is not None else "N/A"
            lines += [
                f"{index}. {step.name}",
                f"   Description: {step.description}",
                f"   Completed: {'yes' if step.completed else 'no'}",
                f"   Processing Time: {elapsed}",
                "",
            ]

    found = {key: value for key, value in result.permit_info.to_dict().items() if value}
    if found:
        lines += ["EXTRACTED BUSINESS INFORMATION:", "------------------------------"]
        lines += [f"{humanize_field_name(key)}: {value}" for key, value in found.items()]
        lines.append("")

    lines += ["RAW OCR TEXT:", "============="]
    lines.append(result.text or "No text detected")

    if result.error:
        lines += ["", "ERROR:", "======", result.error]

    return "\n".join(lines)


class PermitReportWriter:
    """Writes one timestamped report file per scan into a report directory."""

    def __init__(self, report_dir: str | Path) -> None:
        self.report_dir = Path(report_dir)

    def write(self, result: "PermitScanResult", processed_at: datetime | None = None) -> str | None:
        """Write the report for ``result``.

        Returns:
            Path of the written file, or None if it could not be written
        """
        processed_at = processed_at or datetime.now()
        file_name = report_file_name(processed_at)
        content = format_report(result, file_name, processed_at)

        try:
            self.report_dir.mkdir(parents=True, exist_ok=True)
            path = self.report_dir / file_name
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to save OCR report {file_name}: {e}")
            return None

        logger.info(f"OCR report saved: {path}")
        return str(path)
