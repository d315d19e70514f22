"""
Public platform settings (marketing site branding)

Author: TM3
Date: 2025-11-16
"""
from fastapi import APIRouter, HTTPException

from budstack.services.platform_service import PlatformService

router = APIRouter()


@router.get("")
async def get_platform_settings():
    try:
        return {"status": "success", "data": PlatformService().get_settings().to_dict()}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching platform settings: {str(e)}")
