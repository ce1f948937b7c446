"""
Feed Log Excel Export Service.
Generates a spreadsheet of feed log records built by ``build_feed_log``.
"""
from io import BytesIO
from datetime import datetime
from typing import Any, Dict, List
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter

from nutrient_doser.schemas.dosing_schemas import VolumeUnit
from nutrient_doser.services.feed_log_service import water_amount_in

FEED_GREEN = "10B981"
FEED_DARK = "059669"
HEADER_BG = "D1FAE5"

FEED_LOG_COLUMNS = [
    ("Date", "date"),
    ("Stage", "stage"),
    ("Water (gal)", None),
    ("Water PPM", "water_ppm"),
    ("Part A PPM", "part_a_ppm"),
    ("Part B PPM", "part_b_ppm"),
    ("Epsom PPM", "part_c_ppm"),
    ("Bloom PPM", "bloom_ppm"),
    ("Finish PPM", "finish_ppm"),
    ("Target PPM", "target_ppm"),
    ("Final PPM", "final_ppm"),
    ("Scale", "ppm_scale"),
    ("Nutrients", None),
    ("Notes", "notes"),
]


class FeedLogExcelService:
    """Service for exporting feed logs to Excel."""

    def __init__(self):
        self.header_fill = PatternFill(start_color=FEED_DARK, end_color=FEED_DARK, fill_type="solid")
        self.header_font = Font(bold=True, color="FFFFFF", size=11)
        self.title_font = Font(bold=True, size=16, color=FEED_DARK)
        self.light_fill = PatternFill(start_color=HEADER_BG, end_color=HEADER_BG, fill_type="solid")
        self.border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

    def _apply_header_style(self, ws, row_num: int, max_col: int):
        """Apply header styling to a row."""
        for col in range(1, max_col + 1):
            cell = ws.cell(row=row_num, column=col)
            cell.fill = self.header_fill
            cell.font = self.header_font
            cell.alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)
            cell.border = self.border

    def _auto_adjust_columns(self, ws):
        """Auto-adjust column widths."""
        for column in ws.columns:
            column_letter = get_column_letter(column[0].column)
            max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
            ws.column_dimensions[column_letter].width = min(max(max_length + 2, 12), 40)

    def _row_values(self, record: Dict[str, Any]) -> List[Any]:
        values = []
        for header, key in FEED_LOG_COLUMNS:
            if header == "Water (gal)":
                values.append(round(water_amount_in(record, VolumeUnit.GALLONS), 2))
            elif header == "Nutrients":
                values.append(", ".join(
                    f"{n['name']}: {n['grams']} g" for n in record.get("nutrients", [])
                ))
            else:
                values.append(record.get(key))
        return values

    def generate_feed_log_excel(
        self,
        records: List[Dict[str, Any]],
        user_name: str = "Grower"
    ) -> BytesIO:
        """
        Generate an Excel workbook of feed log records.

        Args:
            records: Feed log records, oldest first
            user_name: Name printed on the summary sheet

        Returns:
            BytesIO with Excel file content
        """
        wb = Workbook()
        if wb.active:
            wb.remove(wb.active)

        self._create_log_sheet(wb, records)
        self._create_summary_sheet(wb, records, user_name)

        buffer = BytesIO()
        wb.save(buffer)
        buffer.seek(0)
        return buffer

    def _create_log_sheet(self, wb, records: List[Dict[str, Any]]) -> Any:
        """Create the feed log sheet, one row per record."""
        ws = wb.create_sheet("Feed Logs")
        for col, (header, _) in enumerate(FEED_LOG_COLUMNS, 1):
            ws.cell(row=1, column=col, value=header)
        self._apply_header_style(ws, 1, len(FEED_LOG_COLUMNS))

        for row, record in enumerate(records, 2):
            for col, value in enumerate(self._row_values(record), 1):
                cell = ws.cell(row=row, column=col, value=value)
                cell.border = self.border
                if row % 2 == 1:
                    cell.fill = self.light_fill

        ws.freeze_panes = "A2"
        self._auto_adjust_columns(ws)
        return ws

    def _create_summary_sheet(self, wb, records: List[Dict[str, Any]], user_name: str) -> Any:
        """Create the summary sheet."""
        ws = wb.create_sheet("Summary")

        ws.cell(row=1, column=1, value="FEED LOG EXPORT").font = self.title_font
        ws.merge_cells('A1:C1')

        final_values = [r["final_ppm"] for r in records if r.get("final_ppm") is not None]
        average_final = round(sum(final_values) / len(final_values), 1) if final_values else 0

        summary_data = [
            ("Grower:", user_name),
            ("Generated:", datetime.now().strftime('%Y-%m-%d %H:%M')),
            ("Records:", len(records)),
            ("Average final PPM:", average_final),
        ]
        for row, (label, value) in enumerate(summary_data, 3):
            ws.cell(row=row, column=1, value=label).font = Font(bold=True)
            ws.cell(row=row, column=2, value=value)

        self._auto_adjust_columns(ws)
        return ws


feed_log_excel_service = FeedLogExcelService()
