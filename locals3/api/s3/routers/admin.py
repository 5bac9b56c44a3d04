from __future__ import annotations

import os

from fastapi import APIRouter, Depends, Request, Response
from fastapi.concurrency import run_in_threadpool

from locals3.api.s3.deps import get_services, require_cron_secret
from locals3.api.s3.documents import render_sweep_report, xml_response
from locals3.app.services.bundle import ServiceBundle

# Bucket names may not start with "_", so these paths never shadow a bucket.
ADMIN_PREFIX = "/_admin"

router = APIRouter(prefix=ADMIN_PREFIX)


@router.get("/health")
async def health(services: ServiceBundle = Depends(get_services)):
    writable = os.access(services.layout.root, os.W_OK)
    return {"status": "ok" if writable else "degraded", "storage_writable": writable}


@router.get("/sweep", dependencies=[Depends(require_cron_secret)])
async def sweep(
    request: Request, services: ServiceBundle = Depends(get_services)
) -> Response:
    """Run one expiry sweep over the temporary buckets."""
    request.state.operation = "Sweep"
    report = await run_in_threadpool(services.expiry().sweep)
    return xml_response(render_sweep_report(report))
