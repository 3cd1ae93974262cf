"""
Public site status, polled by the frontend shell to decide whether to show
the maintenance page.
"""
from fastapi import APIRouter, Depends, Request

from sitecms.dependencies import get_site_flags
from sitecms.schemas import MaintenanceStatus
from sitecms.site_settings import SiteFlags

router = APIRouter(prefix="/site", tags=["site"])


@router.get("/status", response_model=MaintenanceStatus)
async def site_status(
    request: Request,
    flags: SiteFlags = Depends(get_site_flags),
):
    """The maintenance flag as resolved by the gate for this request."""
    return MaintenanceStatus(
        maintenance_mode=request.state.maintenance_mode,
        state=flags.maintenance_mode.state.value,
    )
