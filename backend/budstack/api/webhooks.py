"""
Inbound payment webhooks from Dr. Green

Fiat (card) and crypto payment results. Both endpoints are public; the
order reference in the payload is the only link to an order.

Author: TM3
Date: 2025-11-14
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Body, HTTPException

from budstack.core.exceptions import BudStackError, to_http_exception
from budstack.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/drgreen/fiat")
async def drgreen_fiat_callback(background_tasks: BackgroundTasks, payload: Dict[str, Any] = Body(...)):
    """
    Card payment result

    Expected payload keys: custom (order nonce), status, code, payment_id (invoice)
    """
    try:
        result = OrderService(background_tasks=background_tasks).handle_fiat_callback(payload)
        return {"status": "success", "data": result}
    except BudStackError as e:
        logger.warning(f"Rejected fiat payment callback: {e.message}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Fiat payment callback failed: {e}")
        raise HTTPException(status_code=500, detail=f"Error processing payment callback: {str(e)}")


@router.post("/drgreen/crypto")
async def drgreen_crypto_callback(background_tasks: BackgroundTasks, payload: Dict[str, Any] = Body(...)):
    """Crypto payment result (custom_data2 = Dr. Green order id, status_code)"""
    try:
        result = OrderService(background_tasks=background_tasks).handle_crypto_callback(payload)
        return {"status": "success", "data": result}
    except BudStackError as e:
        logger.warning(f"Rejected crypto payment callback: {e.message}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Crypto payment callback failed: {e}")
        raise HTTPException(status_code=500, detail=f"Error processing payment callback: {str(e)}")
