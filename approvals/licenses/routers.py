import logging

from fastapi import APIRouter, Depends

from approvals.licenses import schemas
from approvals.licenses.services import LicenseRegistry, get_license_registry
from approvals.submissions.services import INVALID_LICENSE_MESSAGE

router = APIRouter(tags=["licenses"])
logger = logging.getLogger(__name__)


@router.post("/validate-license", response_model=schemas.LicenseOut, response_model_exclude_none=True)
async def validate_license(
    payload: schemas.LicenseIn,
    registry: LicenseRegistry = Depends(get_license_registry),
):
    logger.info(f"Validating license: {payload.license}")
    record = registry.validate(payload.license)
    if record is None:
        return schemas.LicenseOut(success=False, message=INVALID_LICENSE_MESSAGE)
    return schemas.LicenseOut(success=True, name=record.display_name)
