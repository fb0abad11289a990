"""
Admin chat with the completion model
"""
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from lib.auth import get_admin_user
from dependencies import get_chat_client

from explorer_portal.chat_completion import ChatCompletionClient

router = APIRouter(prefix="/api/chat", tags=["chat"])


class ChatRequest(BaseModel):
    message: str
    system_prompt: Optional[str] = None
    model: Optional[str] = None
    temperature: float = 1.0
    max_tokens: Optional[int] = Field(default=None, gt=0)


@router.post("")
async def chat(
    body: ChatRequest,
    admin: dict = Depends(get_admin_user),
    client: ChatCompletionClient = Depends(get_chat_client),
):
    result = await client.complete(
        body.message,
        system_prompt=body.system_prompt,
        model=body.model,
        temperature=body.temperature,
        max_tokens=body.max_tokens,
    )
    return asdict(result)
