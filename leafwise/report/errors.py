from __future__ import annotations


class ReportExportError(RuntimeError):
    """Base class for failures that abort a report export."""


class MissingInputError(ReportExportError):
    pass


class ImageDecodeError(ReportExportError):
    pass


class ReportRenderError(ReportExportError):
    pass
