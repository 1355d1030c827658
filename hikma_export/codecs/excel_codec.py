# hikma_export/codecs/excel_codec.py

"""Spreadsheet codec backed by XlsxWriter.

The workbook is built entirely in memory. When an enterprise name is known
an ``Info`` worksheet comes first with the name and the export date,
followed by a ``Transactions`` worksheet with one row per transaction.
Workbook creation time is pinned to the export date so that the same
snapshot always produces the same bytes.
"""

from __future__ import annotations

import io
from datetime import date, datetime, time

import xlsxwriter

from hikma_export.codecs.base import BaseCodec
from hikma_export.core.models import ExportArtifact


def format_locale_date(value: date) -> str:
    """Render ``value`` the way an en-US short locale does, e.g. ``Jun 1, 2024``."""
    return f"{value:%b} {value.day}, {value.year}"


class ExcelCodec(BaseCodec):
    content_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

    INFO = "Info"
    TRANSACTIONS = "Transactions"
    HEADERS = ["Date", "Type", "Category", "Client", "Description", "Amount"]
    COLUMN_WIDTHS = [12, 10, 15, 20, 30, 12]
    CLIENT_PLACEHOLDER = "N/A"

    def encode(self, transactions, categories, enterprise_name, export_date):
        buffer = io.BytesIO()
        workbook = xlsxwriter.Workbook(buffer, {
            "in_memory": True,
            "strings_to_formulas": False,
            "strings_to_urls": False,
        })
        workbook.set_properties({"created": datetime.combine(export_date, time())})
        header_fmt = workbook.add_format({"bold": True})
        amount_fmt = workbook.add_format({"num_format": "#,##0.00"})

        name = (enterprise_name or "").strip()
        if name:
            info_ws = workbook.add_worksheet(self.INFO)
            info_ws.set_column(0, 0, 18)
            info_ws.set_column(1, 1, 30)
            info_ws.write_row(0, 0, ["Enterprise Name", name])
            info_ws.write_row(1, 0, ["Export Date", export_date.isoformat()])

        ws = workbook.add_worksheet(self.TRANSACTIONS)
        ws.freeze_panes(1, 0)
        ws.write_row(0, 0, self.HEADERS, header_fmt)
        for col, width in enumerate(self.COLUMN_WIDTHS):
            ws.set_column(col, col, width)

        for row_idx, row in enumerate(self._rows(transactions), start=1):
            ws.write_row(row_idx, 0, row[:5])
            ws.write_number(row_idx, 5, row[5], amount_fmt)

        workbook.close()
        file_name = f"{self.file_stem(enterprise_name)}_{export_date.isoformat()}.xlsx"
        return ExportArtifact(
            file_name=file_name,
            content_type=self.content_type,
            data=buffer.getvalue(),
        )

    def _rows(self, transactions):
        rows = []
        for tx in transactions:
            rows.append([
                format_locale_date(tx.date),
                "Income" if tx.type == "income" else "Expense",
                tx.category,
                tx.client or self.CLIENT_PLACEHOLDER,
                tx.description,
                float(tx.amount),
            ])
        return rows
