"""
Onboarding API - public dispensary applications

Author: TM3
Date: 2025-11-06
"""
import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request

from budstack.core.exceptions import BudStackError, to_http_exception
from budstack.domain.tenant import OnboardingApplication
from budstack.services.onboarding_service import OnboardingService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", status_code=201)
async def submit_application(body: OnboardingApplication, request: Request, background_tasks: BackgroundTasks):
    """
    Submit a dispensary application

    Creates an inactive tenant with its admin account. Returns 400 for
    missing/invalid fields and 409 when the subdomain or e-mail is taken.
    """
    try:
        service = OnboardingService(background_tasks=background_tasks)
        result = await service.submit_application(body, headers=request.headers)
        return {"status": "success", **result}
    except BudStackError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Onboarding failed: {e}")
        raise HTTPException(status_code=500, detail=f"Error submitting application: {str(e)}")
