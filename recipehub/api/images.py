from fastapi import APIRouter, Depends, File, UploadFile

from recipehub.core.config import settings
from recipehub.core.errors import ValidationError
from recipehub.core.responses import success
from recipehub.features.access.service import AccessContext, plan_gated_access, usage_recorded
from recipehub.features.ai import service as ai_service
from recipehub.features.plans.service import PRO_PLANS

router = APIRouter(prefix="/images", tags=["images"])


async def _read_image(image: UploadFile) -> bytes:
    content_type = image.content_type or ""
    if not content_type.startswith("image/"):
        raise ValidationError("Only image files are allowed")
    data = await image.read(settings.MAX_IMAGE_BYTES + 1)
    if not data:
        raise ValidationError("No image file provided")
    if len(data) > settings.MAX_IMAGE_BYTES:
        raise ValidationError("Image exceeds the maximum upload size")
    return data


@router.post("/analyze")
async def analyze_image(
    image: UploadFile = File(...),
    ctx: AccessContext = Depends(plan_gated_access(*PRO_PLANS)),
):
    # Rejected uploads never reach the provider and are not metered
    data = await _read_image(image)
    async with usage_recorded(ctx):
        analysis = await ai_service.analyze_image(data, image.content_type)
    return success(analysis, "Image analyzed successfully")
