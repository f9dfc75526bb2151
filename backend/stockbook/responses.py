# Overview: Request/response helpers shared by the CSV upload and download routes.

from __future__ import annotations

from flask import Response, request

from .services.csv_codec import CsvDownload
from .validation import ValidationError


def csv_attachment(download: CsvDownload) -> Response:
    """Serve a CsvDownload as a file attachment (BOM included in the body)."""
    return Response(
        download.as_bytes(),
        content_type=download.content_type,
        headers={"Content-Disposition": f'attachment; filename="{download.filename}"'},
    )


def read_csv_upload() -> str:
    """
    CSV text from the current request.

    Accepts a multipart upload in the "file" field or a raw text body.
    Raises ValidationError when neither is present or the bytes are not UTF-8.
    """
    if "file" in request.files:
        raw = request.files["file"].read()
    else:
        raw = request.get_data(cache=False)
    if not raw:
        raise ValidationError("CSV file is required")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        raise ValidationError("CSV must be UTF-8 encoded")
