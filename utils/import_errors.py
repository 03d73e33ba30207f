"""Fatal errors of the spreadsheet import. Each one aborts the import before any row is written."""


class ExcelImportError(Exception):
    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        payload = {"success": False, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidWorkbookError(ExcelImportError):
    status_code = 400


class MissingTestMetadataError(ExcelImportError):
    status_code = 400

    def __init__(self):
        super().__init__(
            "Test name not found in Excel cells I1-I6. "
            "Please ensure test name is in cell I1 or H1/I1 format."
        )


class TestNotFoundError(ExcelImportError):
    status_code = 404
    __test__ = False

    def __init__(self, exam_id):
        super().__init__(f"Test not found: {exam_id}")
        self.exam_id = exam_id


class MissingColumnsError(ExcelImportError):
    status_code = 400

    def __init__(self, missing, found):
        self.missing = list(missing)
        self.found_preview = list(found[:10])
        found_text = ", ".join(self.found_preview) + ("..." if len(found) > 10 else "")
        message = f"Missing required columns: {', '.join(self.missing)}"
        details = (
            f"{message}\n"
            f"Found columns in Excel: {found_text}\n"
            f"Please ensure your Excel file has the exact column names as specified."
        )
        super().__init__(message, details=details)


class EmptySheetError(ExcelImportError):
    status_code = 400

    def __init__(self):
        super().__init__("Excel file is empty or no data rows found after header")
