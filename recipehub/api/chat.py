from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from recipehub.core.responses import success
from recipehub.features.access.service import AccessContext, metered_access, usage_recorded
from recipehub.features.ai import service as ai_service

router = APIRouter(prefix="/chat", tags=["chat"])


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    context: Optional[Dict[str, Any]] = None


@router.post("/message")
async def chat_message(body: ChatRequest, ctx: AccessContext = Depends(metered_access)):
    async with usage_recorded(ctx):
        reply = await ai_service.chat_reply(body.message, body.context)
    return success(
        {"message": reply, "timestamp": datetime.now(timezone.utc).isoformat()},
        "Chat response generated successfully",
    )
