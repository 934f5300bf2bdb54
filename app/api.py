"""
FastAPI routes for the inbound message trigger.
The delivery collaborator posts each raw message here; processing runs in
the thread pool so blocking classifier and backend calls do not stall the loop.
"""
import asyncio
import hmac
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from core.config import get_settings
from core.logger import setup_logger
from core.schema import RawMessage
from services.pipeline import MessagePipeline

logger = setup_logger(__name__)

app = FastAPI(
    title="Financial Notification Parser",
    description="Turns forwarded bank and wallet notification emails into ledger transactions",
    version="1.0.0"
)

_pipeline: Optional[MessagePipeline] = None


def get_pipeline() -> MessagePipeline:
    """Pipeline singleton, built on first use."""
    global _pipeline
    if _pipeline is None:
        _pipeline = MessagePipeline.from_settings(get_settings())
    return _pipeline


class InboundMessageRequest(BaseModel):
    """Raw message as supplied by the delivery collaborator."""
    model_config = ConfigDict(populate_by_name=True)

    to: str
    from_: str = Field(..., alias="from")
    raw: str


def verify_inbound_secret(x_secret_key: Optional[str] = Header(None)) -> None:
    """
    Check the shared secret when INBOUND_SECRET_KEY is configured.

    Raises 401 if the header is missing or does not match.
    """
    expected = get_settings().inbound_secret_key
    if not expected:
        return
    if not x_secret_key or not hmac.compare_digest(x_secret_key, expected):
        raise HTTPException(status_code=401, detail="Invalid secret key")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "finmail_parser",
        "version": "1.0.0"
    }


@app.post("/inbound", status_code=202, dependencies=[Depends(verify_inbound_secret)])
async def inbound_message(
    request: InboundMessageRequest,
    pipeline: MessagePipeline = Depends(get_pipeline),
):
    """
    Run one raw message through the pipeline.

    Returns:
        202 Accepted with the pipeline outcome status
    """
    message = RawMessage(to=request.to, from_=request.from_, payload=request.raw)

    loop = asyncio.get_running_loop()
    outcome = await loop.run_in_executor(None, pipeline.process, message)

    logger.info(f"Inbound message to {request.to}: {outcome.status}")
    return {"status": outcome.status}


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
