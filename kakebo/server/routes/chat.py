"""Chat, streaming and health routes."""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from ...errors import DEFAULT_ERROR_MESSAGE, InputValidationError, KakeboError, ModelProviderError
from ...models import ConfirmationRequest
from ..app import require_app, require_user_id, verify_api_key
from ..models import ChatRequest, ChatResponse, ConfirmationResponse, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/chat", dependencies=[Depends(verify_api_key)])
async def chat(req: ChatRequest, user_id: str = Depends(require_user_id)):
    app = require_app()
    try:
        result = await app.chat(
            user_id=user_id,
            message=req.message,
            history=req.history_dicts(),
            confirmed_action=req.confirmed_action_dict(),
        )
    except InputValidationError as e:
        raise HTTPException(400, e.user_message)
    except ModelProviderError as e:
        logger.error(f"[API] Model provider error: {e}")
        raise HTTPException(502, e.user_message)
    except KakeboError as e:
        logger.error(f"[API] Turn failed: {e}")
        raise HTTPException(500, e.user_message)

    if isinstance(result, ConfirmationRequest):
        return ConfirmationResponse.model_validate(result.to_dict())
    return ChatResponse.model_validate(result.to_dict())


@router.post("/stream", dependencies=[Depends(verify_api_key)])
async def stream(req: ChatRequest, user_id: str = Depends(require_user_id)):
    app = require_app()

    async def event_generator():
        try:
            async for event in app.stream(
                user_id=user_id,
                message=req.message,
                history=req.history_dicts(),
                confirmed_action=req.confirmed_action_dict(),
            ):
                yield event.to_json_line()
        except Exception as e:
            # Initialization failures happen before the turn's own error handling
            logger.error(f"[API] Stream failed before the turn started: {e}", exc_info=True)
            yield json.dumps({"type": "error", "message": DEFAULT_ERROR_MESSAGE}, ensure_ascii=False) + "\n"

    return StreamingResponse(
        event_generator(),
        media_type="application/x-ndjson",
    )


@router.get("/health")
async def health():
    app = require_app()
    config = app.orchestrator_config
    return HealthResponse(
        status="ok",
        model=app.model,
        resolver_mode=config.resolver_mode,
        confirmation_enabled=config.enable_write_confirmation,
        capabilities=app.tool_names,
    )
