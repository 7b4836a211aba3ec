"""
Aggregated info endpoint - GET /info
"""

import logging

from fastapi import APIRouter, Depends

from signed_proxy.models import InfoResponse
from signed_proxy.services.transport import UpstreamError
from signed_proxy.upstream import Upstream, get_upstream

logger = logging.getLogger(__name__)

router = APIRouter(tags=["info"])


@router.get("/info", response_model=InfoResponse)
async def info(upstream: Upstream = Depends(get_upstream)):
    """
    Synchronize server time, then drain the audit log.

    The two operations run one after the other against the upstream.
    Upstream failures never fail this endpoint: a failed time sync
    yields an empty `timeInSec` and a failed audit fetch yields an
    empty `auditLogs`. Details are logged server-side only.
    """
    try:
        server_time = await upstream.time_sync.handle_server_time()
    except UpstreamError as e:
        logger.error(f"Time sync failed: {e}")
        server_time = ""

    try:
        audit_logs = await upstream.audit_log.handle_audit_logs()
    except UpstreamError as e:
        logger.error(f"Audit log drain failed: {e}")
        audit_logs = []

    return InfoResponse(time_in_sec=server_time, audit_logs=audit_logs)
