"""
FastAPI REST API for MongoDB selector autocompletion.

Samples collection schemas and serves completions for find selectors.
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import structlog
from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from query_autocomplete import AutoCompleteOrchestrator
from query_autocomplete.config import configure_logging, load_config
from query_autocomplete.core.exceptions import SchemaSampleError, UnknownConnectionError
from query_autocomplete.core.models import Suggestion, SuggestionKind

config = load_config()
configure_logging(config.log_level)

logger = structlog.get_logger(__name__)

_orchestrator: Optional[AutoCompleteOrchestrator] = None


def get_orchestrator() -> AutoCompleteOrchestrator:
    """Create or get the process-wide orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = AutoCompleteOrchestrator.from_config(config)
    return _orchestrator


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting autocomplete API", connections=sorted(config.connections))
    yield
    if _orchestrator is not None:
        _orchestrator.close()


app = FastAPI(
    title="MongoDB Query Autocomplete API",
    description="Schema-aware completions for MongoDB find selectors",
    version="1.0.0",
    lifespan=lifespan,
)


class SampleRequest(BaseModel):
    """Request model for sampling a collection."""
    connection: str = Field(..., description="Configured connection name")
    collection: str = Field(..., description="MongoDB collection name")


class SampleResponse(BaseModel):
    num: int
    schema_: Dict[str, Dict[str, Any]] = Field(..., alias="schema")


class SuggestRequest(BaseModel):
    """Request model for suggestions at a cursor."""
    connection: str = Field(..., description="Configured connection name")
    collection: str = Field(..., description="MongoDB collection name")
    text: str = Field(..., description="Selector body, without the enclosing braces")
    cursor: int = Field(..., description="Caret offset in text")


class SuggestResponse(BaseModel):
    suggestions: List[Suggestion]
    loading: bool


class ReplaceRequest(BaseModel):
    """Request model for applying a suggestion."""
    text: str = Field(..., description="Selector body, without the enclosing braces")
    cursor: int = Field(..., description="Caret offset in text")
    suggestion: str = Field(..., description="Accepted suggestion text")
    kind: SuggestionKind = Field(..., description="Kind of the accepted suggestion")


class ReplaceResponse(BaseModel):
    text: str
    cursor: int


@app.post("/sample", response_model=SampleResponse)
async def sample_schema(
    request: SampleRequest,
    orchestrator: AutoCompleteOrchestrator = Depends(get_orchestrator),
):
    """
    Sample a collection (or reuse a fresh cached schema) and return it.
    """
    try:
        schema = await orchestrator.get_schema(request.connection, request.collection, wait=True)
    except UnknownConnectionError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SchemaSampleError as e:
        logger.error("Sampling failed", connection=request.connection, collection=request.collection, error=str(e))
        raise HTTPException(status_code=502, detail=str(e))

    return SampleResponse(num=schema.sampled, schema=schema.to_flags())


@app.post("/suggest", response_model=SuggestResponse)
async def suggest(
    request: SuggestRequest,
    orchestrator: AutoCompleteOrchestrator = Depends(get_orchestrator),
):
    """
    Suggest completions at the cursor.

    While the collection schema is being sampled, returns no suggestions and
    loading=true.
    """
    try:
        result = await orchestrator.suggest(
            request.connection, request.collection, request.text, request.cursor
        )
    except UnknownConnectionError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return SuggestResponse(**result)


@app.post("/replace", response_model=ReplaceResponse)
async def replace(
    request: ReplaceRequest,
    orchestrator: AutoCompleteOrchestrator = Depends(get_orchestrator),
):
    """Apply an accepted suggestion and return the new text and cursor."""
    result = orchestrator.replace(request.text, request.cursor, request.suggestion, request.kind)
    return ReplaceResponse(text=result.text, cursor=result.cursor)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.api_host, port=config.api_port)
