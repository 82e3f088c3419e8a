import io
from typing import List, Optional

import xlsxwriter

from pvbom.models import LineItem


def _status(item: LineItem) -> str:
    if item.is_manual:
        return "Manual"
    if item.is_configured:
        return "Configured"
    return "Automatic"


def generate_bom_file(
    items: List[LineItem],
    output_path: Optional[str] = None,
    warnings: Optional[List[str]] = None,
) -> Optional[bytes]:
    """
    Generate a BOM (Bill of Materials) Excel file.

    Args:
        items (List[LineItem]): Consolidated BOM positions.
        output_path (str | None): Path to save the generated BOM file. If None, returns bytes.
        warnings (List[str] | None): Derivation warnings, written to a second sheet.
    """
    buffer = None

    if output_path:
        workbook = xlsxwriter.Workbook(output_path)
    else:
        buffer = io.BytesIO()
        workbook = xlsxwriter.Workbook(buffer, {"in_memory": True})
    worksheet = workbook.add_worksheet("BOM")

    header_format = workbook.add_format({
        'bold': True,
        'font_color': 'white',
        'bg_color': '#4CAF50',
        'border': 1
    })
    cell_format = workbook.add_format({'border': 1})
    qty_format = workbook.add_format({'border': 1, 'num_format': '0.##'})

    headers = ["Material ID", "Description", "Category", "Quantity", "Status"]
    for col, header in enumerate(headers):
        worksheet.write(0, col, header, header_format)

    for row, item in enumerate(items, start=1):
        worksheet.write(row, 0, item.material_id, cell_format)
        worksheet.write(row, 1, item.description, cell_format)
        worksheet.write(row, 2, item.category, cell_format)
        worksheet.write_number(row, 3, item.quantity, qty_format)
        worksheet.write(row, 4, _status(item), cell_format)

    worksheet.set_column(0, 0, 24)  # Material ID
    worksheet.set_column(1, 1, 50)  # Description
    worksheet.set_column(2, 2, 24)  # Category
    worksheet.set_column(3, 3, 10)  # Quantity
    worksheet.set_column(4, 4, 12)  # Status

    if warnings:
        warn_sheet = workbook.add_worksheet("Warnings")
        warn_sheet.write(0, 0, "Warning", header_format)
        for row, text in enumerate(warnings, start=1):
            warn_sheet.write(row, 0, text, cell_format)
        warn_sheet.set_column(0, 0, 90)

    workbook.close()

    if buffer:
        buffer.seek(0)
        return buffer.getvalue()
    return None
