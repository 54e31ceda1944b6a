import logging

from fastapi import APIRouter, Depends

from approvals.submissions import schemas
from approvals.submissions.services import NOT_RESOLVED_MESSAGE, SubmissionService

router = APIRouter(tags=["submissions"])
logger = logging.getLogger(__name__)


@router.post("/submit-form", response_model=schemas.ActionResult)
async def submit_form(payload: schemas.SubmitFormIn, service: SubmissionService = Depends()):
    return await service.intake(payload)


@router.post("/check-response", response_model=schemas.ActionResult)
async def check_response(payload: schemas.ResponseLookupIn, service: SubmissionService = Depends()):
    logger.info(f"Checking response: nationalCode={payload.national_code}, license={payload.license}")
    message = await service.poll_response(payload.national_code, payload.license)
    if message is None:
        return schemas.ActionResult(success=False, message=NOT_RESOLVED_MESSAGE)
    return schemas.ActionResult(success=True, message=message)


@router.post("/clear-messages", response_model=schemas.ActionResult, response_model_exclude_none=True)
async def clear_messages(payload: schemas.ResponseLookupIn, service: SubmissionService = Depends()):
    logger.info(f"Clearing messages: nationalCode={payload.national_code}, license={payload.license}")
    await service.clear_response(payload.national_code, payload.license)
    return schemas.ActionResult(success=True)
