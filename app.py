"""
FastAPI application for the Shop Assistant service.

Routes for product search, conversation, recommendations and session
management. Startup never fails on bad configuration: the service comes
up degraded and answers with fallbacks.
"""

import os
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

# Only load .env file in development (not on Vercel)
# Vercel sets environment variables directly
if os.getenv("VERCEL") != "1":
    from dotenv import load_dotenv
    load_dotenv(override=True)

from fastapi import FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agent import get_agent, reset_agent
from behavior import get_behavior_tracker
from images import get_image_resolver
from models import (
    ConversationReply, ConversationRequest, PreferencesRequest,
    RecommendationRequest, RecommendationSet, SearchResponse
)
from recommender import get_recommender, reset_recommender
from session_store import get_session_store
from tools.search_tool import get_search_service, suggest_queries
from connection import connections, health_check as connection_health_check
from config import validate_config_on_startup, get_config
from logger import get_logger, bind_request_id, reset_request_id

logger = get_logger(__name__)

# Check if running in serverless environment
IS_SERVERLESS = os.getenv("VERCEL") == "1" or os.getenv("AWS_LAMBDA_FUNCTION_NAME") is not None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Validate configuration on startup and release clients on shutdown.

    A configuration error never stops the service: it starts degraded and
    every external call takes its fallback path.
    """
    logger.info("=" * 60)
    logger.info(f"Starting Shop Assistant API (Serverless: {IS_SERVERLESS})")
    logger.info("=" * 60)

    app.state.config_status = {"valid": False, "error": None}

    try:
        config = validate_config_on_startup()
        app.state.config_status = {
            "valid": True,
            "error": None,
            "completion_provider": config.completion_provider,
            "search_backend": config.search_backend
        }
        logger.info("Configuration validated")
    except ValueError as e:
        logger.error(f"Configuration validation failed: {e}")
        logger.warning("[STARTUP] Starting in DEGRADED MODE - replies will use fallbacks")
        app.state.config_status = {"valid": False, "error": str(e)}

    yield

    logger.info("Shutting down")
    try:
        await connections.aclose()
        reset_agent()
        reset_recommender()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


app = FastAPI(
    title="Shop Assistant API",
    description="Conversational product search and recommendations",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().cors_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all uncaught exceptions."""
    logger.error(
        f"Unhandled exception: {str(exc)}",
        path=request.url.path,
        method=request.method,
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": str(exc) if os.getenv("DEBUG", "").lower() == "true" else None,
            "status_code": 500
        }
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests with timing."""
    start_time = time.time()
    token = bind_request_id(str(uuid.uuid4())[:8])

    try:
        logger.debug("Request started", method=request.method, path=request.url.path)
        response = await call_next(request)
        logger.request(
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=(time.time() - start_time) * 1000
        )
        return response
    finally:
        reset_request_id(token)


def _purge_stale() -> None:
    """Drop sessions and behaviour profiles idle past the retention window."""
    retention_ms = get_config().session_retention_ms
    get_session_store().purge_stale(retention_ms)
    get_behavior_tracker().purge_stale(retention_ms)


def _require_session_id(session_id: Optional[str]) -> str:
    if not session_id or not session_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Session ID required"
        )
    return session_id


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Shop Assistant API",
        "version": "1.0.0",
        "status": "running",
        "serverless": IS_SERVERLESS,
        "docs": "/docs"
    }


@app.get("/health")
async def health(request: Request):
    """Health check with live backend status."""
    config_status = getattr(request.app.state, "config_status", {"valid": False, "error": "Status not initialized"})
    services = await connection_health_check()
    all_healthy = config_status.get("valid", False) and all(s.get("healthy", False) for s in services.values())

    return {
        "status": "healthy" if all_healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "serverless": IS_SERVERLESS,
        "config": config_status,
        "live_check": services,
        "sessions": get_session_store().stats()
    }


@app.get("/api/search")
async def search(
    q: Optional[str] = None,
    type: str = "products",
    size: Optional[int] = Query(None, ge=1, le=50),
    include_chat: bool = Query(False, alias="includeChat")
):
    """
    Product search, autocomplete suggestions, and an optional assistant reply.

    Raises:
        HTTPException: If the query parameter is missing
    """
    if not q or not q.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Query parameter is required"
        )

    if type == "suggestions":
        return {"suggestions": suggest_queries(q)}

    results = await get_search_service().search(q, size or get_config().search_result_size)
    results = get_image_resolver().enrich(results)

    chat_response = None
    if include_chat:
        chat_response = await get_agent().quick_reply(q)

    response = SearchResponse(results=results, total=len(results), query=q, chat_response=chat_response)
    return response.model_dump(by_alias=True)


@app.post("/api/conversation", response_model=ConversationReply)
async def conversation(request: ConversationRequest) -> ConversationReply:
    """Answer one conversational turn with full session context."""
    _purge_stale()

    logger.info(
        "Conversation request received",
        session_id=request.session_id,
        message_length=len(request.message),
        candidates=len(request.search_results)
    )

    return await get_agent().respond(
        request.session_id,
        request.message,
        request.current_search,
        request.search_results
    )


@app.get("/api/conversation")
async def conversation_summary(session_id: Optional[str] = Query(None, alias="sessionId")):
    """Summary of a conversation session."""
    session_id = _require_session_id(session_id)
    summary = get_session_store().summarize(session_id)
    return {"summary": summary.model_dump(by_alias=True), "sessionId": session_id}


@app.put("/api/conversation/preferences")
async def update_preferences(request: PreferencesRequest):
    """Merge shopper preferences into a session."""
    updates = request.model_dump(exclude={"session_id"}, exclude_none=True)
    session = get_session_store().update_preferences(request.session_id, **updates)
    return {
        "sessionId": request.session_id,
        "preferences": session.preferences.model_dump(by_alias=True)
    }


@app.post("/api/recommendations")
async def recommendations(request: RecommendationRequest):
    """Track a behaviour signal, or build the three recommendation buckets."""
    tracker = get_behavior_tracker()

    if request.action == "track" and request.session_id and request.product_id and request.action_type:
        try:
            tracker.track(request.session_id, request.action_type, request.product_id)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        return {"success": True}

    if not request.search_query or request.search_results is None or not request.session_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required parameters"
        )

    _purge_stale()
    tracker.track(request.session_id, "search", request.search_query)

    result: RecommendationSet = await get_recommender().recommend(
        request.search_query,
        request.search_results,
        request.session_id
    )
    return result.model_dump(by_alias=True)


@app.get("/api/recommendations")
async def user_behavior(session_id: Optional[str] = Query(None, alias="sessionId")):
    """Recorded behaviour for a session, or null when none exists."""
    session_id = _require_session_id(session_id)
    profile = get_behavior_tracker().get(session_id)
    return {
        "userBehavior": profile.model_dump(by_alias=True) if profile is not None else None,
        "sessionId": session_id
    }


@app.get("/session/{session_id}")
async def get_session(session_id: str):
    """
    Get session information and conversation history.

    Raises:
        HTTPException: If session not found
    """
    session = get_session_store().get(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found"
        )

    return {
        "session_id": session.id,
        "created_at": session.created_at.isoformat(),
        "turns": [turn.model_dump(mode="json", by_alias=True) for turn in session.turns],
        "preferences": session.preferences.model_dump(by_alias=True),
        "turn_count": len(session.turns)
    }


@app.delete("/session/{session_id}")
async def delete_session(session_id: str):
    """
    Delete a session and clear its history.

    Raises:
        HTTPException: If session not found
    """
    if not get_session_store().delete(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found"
        )

    logger.info("Session deleted", session_id=session_id)
    return {
        "message": "Session deleted successfully",
        "session_id": session_id
    }


@app.post("/sessions/cleanup")
async def cleanup_expired_sessions():
    """Purge sessions and behaviour profiles idle past the retention window."""
    retention_ms = get_config().session_retention_ms
    store = get_session_store()
    cleaned = store.purge_stale(retention_ms)
    cleaned_profiles = get_behavior_tracker().purge_stale(retention_ms)

    return {
        "message": "Expired sessions cleaned up",
        "cleaned_count": cleaned,
        "cleaned_profiles": cleaned_profiles,
        "remaining_sessions": len(store)
    }


@app.get("/sessions/stats")
async def get_session_stats():
    """Statistics about sessions and tracked behaviour."""
    stats = get_session_store().stats()
    stats["behavior_profiles"] = len(get_behavior_tracker())
    return stats


if __name__ == "__main__":
    import uvicorn

    config = get_config()
    uvicorn.run(
        "app:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
