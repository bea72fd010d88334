"""Webhook server receiving chat messages from the chat host."""

import os
from contextlib import AsyncExitStack

import structlog
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from release_sapiens.config.settings import ReleaseSettings
from release_sapiens.engine.notifier import ReleaseNotifier
from release_sapiens.engine.release import EVENT_NAME, ReleaseEvent
from release_sapiens.exceptions import ConfigurationError, ReleaseSapiensError
from release_sapiens.models.domain import ChatMessage
from release_sapiens.providers.factory import create_message_provider, create_pull_request_provider

log = structlog.get_logger(__name__)

CONFIG_PATH_ENV = "RELEASE_SAPIENS_CONFIG"
DEFAULT_CONFIG_PATH = "release_sapiens/config/release_config.yaml"

app = FastAPI(title="Release Sapiens Webhook Server")

# Global state
settings: ReleaseSettings | None = None


class MessagePayload(BaseModel):
    channel: str
    text: str
    user: str = ""


class AnswerPayload(BaseModel):
    text: str
    error: str | None = None


@app.on_event("startup")
async def startup():
    """Load settings on startup."""
    global settings
    config_path = os.getenv(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH)
    try:
        settings = ReleaseSettings.from_yaml(config_path)
        log.info("webhook_server_started", config=config_path)
    except ConfigurationError as e:
        log.error("webhook_startup_failed", error=e.message, exc_info=True)
        raise


@app.post("/events/message", response_model=AnswerPayload)
async def message_event(payload: MessagePayload) -> AnswerPayload:
    """Run the release event for a chat message.

    Remote failures during the release are part of the answer (``error``),
    not HTTP errors.
    """
    if settings is None:
        raise HTTPException(status_code=503, detail="Server is not configured")

    log.info("message_received", channel=payload.channel, user=payload.user, event_name=EVENT_NAME)

    try:
        async with AsyncExitStack() as stack:
            bitbucket = await stack.enter_async_context(create_pull_request_provider(settings))
            slack = create_message_provider(settings)
            if slack is not None:
                await stack.enter_async_context(slack)

            event = ReleaseEvent(bitbucket, ReleaseNotifier(slack), settings)
            answer = await event.execute(
                ChatMessage(channel=payload.channel, text=payload.text, user=payload.user)
            )
    except ReleaseSapiensError as e:
        log.error("message_processing_failed", error=e.message, exc_info=True)
        raise HTTPException(status_code=422, detail=e.message) from e

    return AnswerPayload(text=answer.text, error=str(answer.error) if answer.error else None)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "release-webhook"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)  # nosec B104 # Development server binding
