from __future__ import annotations

import csv
import io
import logging
from typing import Any

from openpyxl import load_workbook

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB

SUPPORTED_EXTENSIONS = ("csv", "xlsx")

Grid = list[list[Any]]


class FileParsingError(Exception):
    pass


def _trim_trailing_blank_rows(rows: Grid) -> Grid:
    end = len(rows)
    while end > 0 and all(cell is None or str(cell).strip() == "" for cell in rows[end - 1]):
        end -= 1
    return rows[:end]


class FileParser:
    def parse_csv(self, file_bytes: bytes) -> Grid:
        try:
            content = file_bytes.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise FileParsingError(f"CSV parsing failed: file is not valid UTF-8 ({e})") from e

        try:
            rows = [list(row) for row in csv.reader(io.StringIO(content), strict=True)]
        except csv.Error as e:
            logger.error("CSV parsing failed: %s", e)
            raise FileParsingError(f"CSV parsing errors: {e}") from e

        return _trim_trailing_blank_rows(rows)

    def parse_excel(self, file_bytes: bytes) -> Grid:
        try:
            workbook = load_workbook(io.BytesIO(file_bytes), read_only=True, data_only=True)
        except Exception as e:
            logger.error("Excel parsing failed: %s", e)
            raise FileParsingError(f"Excel parsing failed: {e}") from e

        try:
            if not workbook.sheetnames:
                raise FileParsingError("No sheets found in Excel file")
            worksheet = workbook[workbook.sheetnames[0]]
            rows = [list(row) for row in worksheet.iter_rows(values_only=True)]
        finally:
            workbook.close()

        return _trim_trailing_blank_rows(rows)

    def parse(self, file_bytes: bytes, file_name: str) -> Grid:
        if "." not in file_name:
            raise FileParsingError("Unable to determine file type")

        extension = file_name.rsplit(".", 1)[1].lower()
        if extension not in SUPPORTED_EXTENSIONS:
            raise FileParsingError(
                f"Unsupported file format. Please use one of: {', '.join(SUPPORTED_EXTENSIONS)}"
            )

        if len(file_bytes) > MAX_FILE_SIZE:
            raise FileParsingError(f"File too large: {len(file_bytes)} bytes (max {MAX_FILE_SIZE})")

        if not file_bytes:
            raise FileParsingError("Empty file")

        if extension == "csv":
            return self.parse_csv(file_bytes)
        return self.parse_excel(file_bytes)


file_parser = FileParser()
