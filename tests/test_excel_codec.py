import io
from datetime import date

import openpyxl

from hikma_export.codecs.excel_codec import ExcelCodec, format_locale_date

EXPORT_DAY = date(2024, 6, 1)


def _load(artifact):
    return openpyxl.load_workbook(io.BytesIO(artifact.data), data_only=True)


def test_format_locale_date():
    assert format_locale_date(date(2024, 6, 1)) == "Jun 1, 2024"
    assert format_locale_date(date(2023, 12, 25)) == "Dec 25, 2023"


def test_excel_workbook_with_info_sheet(transactions, categories):
    artifact = ExcelCodec().encode(transactions, categories, "Acme", EXPORT_DAY)

    assert artifact.file_name == "Acme_2024-06-01.xlsx"
    assert artifact.content_type.endswith("spreadsheetml.sheet")

    wb = _load(artifact)
    assert wb.sheetnames == ["Info", "Transactions"]
    info = list(wb["Info"].values)
    assert info == [("Enterprise Name", "Acme"), ("Export Date", "2024-06-01")]

    rows = list(wb["Transactions"].values)
    assert rows[0] == ("Date", "Type", "Category", "Client", "Description", "Amount")
    assert rows[1] == ("May 20, 2024", "Income", "Sales", "Globex", "Invoice 42", 1500)
    assert rows[2] == ("May 28, 2024", "Expense", "Food", "N/A", "Team lunch", 42.5)


def test_excel_without_enterprise_name_has_no_info_sheet(transactions, categories):
    artifact = ExcelCodec().encode(transactions, categories, None, EXPORT_DAY)

    assert artifact.file_name == "HikmaCash_2024-06-01.xlsx"
    wb = _load(artifact)
    assert wb.sheetnames == ["Transactions"]


def test_excel_column_widths(transactions, categories):
    wb = _load(ExcelCodec().encode(transactions, categories, None, EXPORT_DAY))
    ws = wb["Transactions"]
    widths = [ws.column_dimensions[col].width for col in "ABCDEF"]
    assert all(widths)
    # Description is the widest column, Type the narrowest.
    assert max(widths) == widths[4]
    assert min(widths) == widths[1]


def test_excel_text_is_never_a_formula(categories, transactions):
    transactions[0].description = "=SUM(A1:A9)"
    wb = _load(ExcelCodec().encode(transactions, categories, None, EXPORT_DAY))
    assert wb["Transactions"]["E2"].value == "=SUM(A1:A9)"
    assert wb["Transactions"]["E2"].data_type == "s"


def test_excel_encoding_is_deterministic(transactions, categories):
    first = ExcelCodec().encode(transactions, categories, "Acme", EXPORT_DAY)
    second = ExcelCodec().encode(transactions, categories, "Acme", EXPORT_DAY)
    assert first.data == second.data
