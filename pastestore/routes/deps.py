"""
Request-scoped dependencies shared by the route modules.
"""
from typing import Optional

from fastapi import Depends, Header, Request

from pastestore.clock import resolve_now
from pastestore.service import PasteService


def get_service(request: Request) -> PasteService:
    return request.app.state.service


def request_now(
    service: PasteService = Depends(get_service),
    x_test_now_ms: Optional[str] = Header(None),
) -> int:
    """Resolve "now" once per request, honouring x-test-now-ms in TEST_MODE."""
    return resolve_now(service.clock, service.config.TEST_MODE, x_test_now_ms)
