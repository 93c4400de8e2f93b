"""
Export of generated metadata in microstock upload formats.
"""

import csv
import datetime
import json
from typing import List, Optional, Sequence

from .batch_processor import BatchItem
from .logging_setup import get_logger

logger = get_logger(__name__)

CSV_HEADERS = ['filename', 'title', 'description', 'keywords', 'category']


def default_csv_filename(date: Optional[datetime.date] = None) -> str:
    """Dated file name, e.g. microstock-metadata-2024-05-01.csv."""
    date = date or datetime.date.today()
    return f"microstock-metadata-{date.isoformat()}.csv"


def build_rows(items: Sequence[BatchItem]) -> List[List[str]]:
    """Flatten completed batch items into CSV rows (without header)."""
    rows = []
    for item in items:
        result = item.result
        if result is None:
            continue
        rows.append([
            item.image.name,
            result.title,
            result.description,
            ', '.join(result.keywords),
            result.category,
        ])
    return rows


def export_csv(items: Sequence[BatchItem], output_path: str) -> int:
    """
    Write batch results to a CSV file.

    Fields containing a comma, quote or newline are quoted, with quotes doubled.

    Args:
        items: Completed batch items
        output_path: Destination file

    Returns:
        Number of rows written

    Raises:
        ValueError: If there is nothing to export
    """
    rows = build_rows(items)
    if not rows:
        raise ValueError("No metadata to export. Generate metadata for images first.")

    with open(output_path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f, quoting=csv.QUOTE_MINIMAL, lineterminator='\n')
        writer.writerow(CSV_HEADERS)
        writer.writerows(rows)

    logger.info(f"Exported metadata for {len(rows)} images to {output_path}")
    return len(rows)


def export_json(items: Sequence[BatchItem], output_path: str) -> int:
    """
    Write batch results, including alternative titles, to a JSON file.

    Returns:
        Number of entries written
    """
    entries = [
        dict(filename=item.image.name, **item.result.to_dict())
        for item in items if item.result is not None
    ]
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(entries, f, indent=2, ensure_ascii=False)

    logger.info(f"Saved {len(entries)} results to {output_path}")
    return len(entries)
