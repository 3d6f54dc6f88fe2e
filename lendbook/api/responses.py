"""Response helpers - JSON envelope and file downloads"""

import io
from typing import Any, Optional

from fastapi.responses import StreamingResponse

from lendbook.api.v1.schemas import Envelope
from lendbook.infrastructure.reports.renderer import PDF_MEDIA_TYPE, XLSX_MEDIA_TYPE

EXTENSIONS = {"excel": ("xlsx", XLSX_MEDIA_TYPE), "pdf": ("pdf", PDF_MEDIA_TYPE)}


def ok(message: str, data: Optional[Any] = None) -> Envelope:
    return Envelope(status="Success", message=message, data=data)


def failed(message: str, data: Optional[Any] = None) -> dict:
    return Envelope(status="Failed", message=message, data=data).model_dump(mode="json")


def file_response(content: bytes, fmt: str, basename: str) -> StreamingResponse:
    """Stream a rendered report as an attachment"""
    extension, media_type = EXTENSIONS[fmt]
    return StreamingResponse(
        io.BytesIO(content),
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={basename}.{extension}"},
    )
