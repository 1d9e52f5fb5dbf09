"""
Paste routes.
Handles create, fetch (API), view (HTML), stats, delete, list and purge.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse

from pastestore.errors import InvalidArgument, NotAvailable, NotFound, StoreError
from pastestore.models import (
    DeleteResult,
    PasteCreate,
    PasteResponse,
    PasteStats,
    PasteView,
    PurgeResult,
)
from pastestore.routes.deps import get_service, request_now
from pastestore.service import PasteService

router = APIRouter()
logger = logging.getLogger(__name__)

UNAVAILABLE_DETAIL = "Paste not found, expired, or view limit exceeded"


def _store_failed(e: StoreError) -> HTTPException:
    logger.error(f"Store failure: {e}")
    return HTTPException(status_code=503, detail="Paste store unavailable, try again")


@router.post("/api/pastes", response_model=PasteResponse, status_code=201)
def create_paste(
    paste: PasteCreate,
    service: PasteService = Depends(get_service),
    now_ms: int = Depends(request_now),
) -> PasteResponse:
    """
    Create a new paste.

    Args:
        paste: Paste data (content, optional ttl_seconds, optional max_views)
        service: Paste service bound to the app
        now_ms: Request time (x-test-now-ms in TEST_MODE)

    Returns:
        Paste ID, shareable URL and creation time

    Raises:
        HTTPException: 400 if input is invalid, 503 if the store failed
    """
    try:
        record = service.create(
            paste.content,
            ttl_seconds=paste.ttl_seconds,
            max_views=paste.max_views,
            now_ms=now_ms,
        )
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreError as e:
        raise _store_failed(e)

    base_url = service.config.APP_DOMAIN.rstrip("/")
    return PasteResponse(id=record.id, url=f"{base_url}/p/{record.id}", created_at=record.created_at)


@router.get("/api/pastes", response_model=List[PasteStats])
def list_pastes(
    limit: Optional[int] = Query(None),
    service: PasteService = Depends(get_service),
) -> List[PasteStats]:
    """List paste metadata, newest first. Dead pastes are included."""
    try:
        metas = service.list_all(limit)
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreError as e:
        raise _store_failed(e)
    return [PasteStats.from_meta(m) for m in metas]


@router.get("/api/pastes/{paste_id}", response_model=PasteView)
def fetch_paste(
    paste_id: str,
    service: PasteService = Depends(get_service),
    now_ms: int = Depends(request_now),
) -> PasteView:
    """
    Fetch a paste (API endpoint).
    Each successful fetch spends one view of a limited paste.

    Raises:
        HTTPException: 404 if paste not found, expired, or view limit exceeded
    """
    try:
        paste = service.consume(paste_id, now_ms)
    except NotAvailable:
        raise HTTPException(status_code=404, detail=UNAVAILABLE_DETAIL)
    except StoreError as e:
        raise _store_failed(e)
    return PasteView.from_paste(paste)


@router.get("/api/pastes/{paste_id}/stats", response_model=PasteStats)
def paste_stats(
    paste_id: str,
    service: PasteService = Depends(get_service),
) -> PasteStats:
    """Metadata for a paste without spending a view."""
    try:
        meta = service.stats(paste_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="Paste not found")
    except StoreError as e:
        raise _store_failed(e)
    return PasteStats.from_meta(meta)


@router.delete("/api/pastes/{paste_id}", response_model=DeleteResult)
def delete_paste(
    paste_id: str,
    service: PasteService = Depends(get_service),
) -> DeleteResult:
    try:
        return DeleteResult(deleted=service.delete(paste_id))
    except StoreError as e:
        raise _store_failed(e)


@router.post("/api/admin/purge", response_model=PurgeResult)
def purge_pastes(
    service: PasteService = Depends(get_service),
    now_ms: int = Depends(request_now),
) -> PurgeResult:
    """Physically remove every expired or view-exhausted paste."""
    try:
        return PurgeResult(purged=service.purge(now_ms))
    except StoreError as e:
        raise _store_failed(e)


@router.get("/p/{paste_id}", response_class=HTMLResponse)
def view_paste(
    paste_id: str,
    service: PasteService = Depends(get_service),
    now_ms: int = Depends(request_now),
) -> HTMLResponse:
    """
    View a paste as HTML.
    Each successful view spends one view of a limited paste.
    """
    try:
        paste = service.consume(paste_id, now_ms)
    except NotAvailable:
        return HTMLResponse(NOT_FOUND_PAGE, status_code=404)
    except StoreError as e:
        logger.error(f"Store failure: {e}")
        return HTMLResponse(ERROR_PAGE, status_code=503)

    content_escaped = _escape(paste.content)
    return HTMLResponse(PASTE_PAGE.format(paste_id=_escape(paste_id), content=content_escaped))


def _escape(text: str) -> str:
    """Escape HTML entities for safe display."""
    return (
        text
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#x27;")
    )


_PAGE_STYLE = """
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body {
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, "Helvetica Neue", Arial, sans-serif;
            background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
            min-height: 100vh;
            display: flex;
            align-items: center;
            justify-content: center;
            padding: 20px;
        }
        .container {
            background: white;
            border-radius: 10px;
            box-shadow: 0 10px 40px rgba(0, 0, 0, 0.3);
            max-width: 900px;
            width: 100%;
            padding: 40px;
        }
        h1 { color: #333; margin-bottom: 10px; font-size: 24px; }
        .paste-id { color: #666; font-size: 12px; margin-bottom: 30px; font-family: monospace; word-break: break-all; }
        .content {
            background: #f5f5f5;
            border: 1px solid #ddd;
            border-radius: 5px;
            padding: 20px;
            font-family: "Courier New", monospace;
            font-size: 14px;
            line-height: 1.6;
            max-height: 500px;
            overflow-y: auto;
            white-space: pre-wrap;
            word-wrap: break-word;
            color: #333;
        }
        .footer { margin-top: 20px; text-align: center; color: #999; font-size: 12px; }
        .footer a { color: #667eea; text-decoration: none; }
"""

# Braces are doubled because the style is spliced into str.format templates.
_FORMAT_STYLE = _PAGE_STYLE.replace("{", "{{").replace("}", "}}")

PASTE_PAGE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Paste - pastestore</title>
    <style>""" + _FORMAT_STYLE + """</style>
</head>
<body>
    <div class="container">
        <h1>📋 pastestore</h1>
        <div class="paste-id">ID: {paste_id}</div>
        <div class="content">{content}</div>
        <div class="footer">
            <p><a href="/">Create a new paste</a></p>
        </div>
    </div>
</body>
</html>"""


def _message_page(title: str, heading: str, message: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title} - pastestore</title>
    <style>{_PAGE_STYLE}</style>
</head>
<body>
    <div class="container">
        <h1>{heading}</h1>
        <p>{message}</p>
        <div class="footer">
            <p><a href="/">Create a new paste</a></p>
        </div>
    </div>
</body>
</html>"""


NOT_FOUND_PAGE = _message_page(
    "Not Found",
    "404",
    "Oops! This paste was not found, has expired, or its view limit has been exceeded.",
)
ERROR_PAGE = _message_page("Unavailable", "503", "The paste store is unavailable. Please try again.")
