"""Chat endpoint - POST /api/chat."""

import asyncio
import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.chat.concepts import (
    ConceptQuery,
    build_concept_instruction,
    detect_concept_query,
)
from backend.app.config import Settings, get_settings
from backend.app.content.retriever import format_matches_for_prompt, search_content
from backend.app.db.engine import get_optional_session
from backend.app.llm.client import (
    CompletionClient,
    CompletionError,
    CompletionRequest,
    CompletionTimeoutError,
    complete_text,
    fallback_message,
    get_completion_client,
)
from backend.app.models.chat import ChatContext, ChatRequest, ChatResponse, MessageMetadata
from backend.app.models.common import ChatMessage, now_ms


router = APIRouter(prefix="/api", tags=["chat"])
logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are the AI-Dev Education assistant, a helpful guide for developers learning to "
    "build with AI. You explain concepts such as the Model Context Protocol, agents, "
    "prompt engineering and AI-assisted development clearly and accurately, adapt to the "
    "user's level, and point to pages of this site when they are relevant. Use markdown "
    "formatting and code blocks where they help."
)

NOT_CONFIGURED_REPLY = (
    "I'm sorry, I can't answer right now because the AI service is not configured. "
    "Please contact the administrator to set up the API key."
)

TIMEOUT_REPLY = (
    "I'm sorry, the AI service took too long to respond. "
    "Please try a shorter question or try again in a moment."
)


def _json(model: ChatResponse, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(content=model.model_dump(by_alias=True, mode="json"), status_code=status_code)


def build_messages(
    message: str,
    history: list[ChatMessage],
    context: ChatContext,
    concept: ConceptQuery | None,
    docs_prompt: str | None,
    history_limit: int,
) -> list[ChatMessage]:
    """Assemble the completion prompt.

    Order: base system prompt, page note, concept instruction, documentation
    excerpts, the last ``history_limit`` prior turns, then the new message.
    """
    messages = [ChatMessage(role="system", content=SYSTEM_PROMPT)]
    if context.current_page:
        messages.append(
            ChatMessage(
                role="system",
                content=(
                    f"The user is currently on the {context.current_page} page of the AI-Dev "
                    "Education platform. Consider this context in your response if relevant."
                ),
            )
        )
    if concept is not None:
        messages.append(ChatMessage(role="system", content=build_concept_instruction(concept)))
    if docs_prompt:
        messages.append(ChatMessage(role="system", content=docs_prompt))

    prior = [m for m in history if m.role in ("user", "assistant")]
    if history_limit > 0:
        messages.extend(prior[-history_limit:])
    messages.append(ChatMessage(role="user", content=message))
    return messages


async def find_docs(
    message: str, session: AsyncSession | None, limit: int
) -> tuple[str | None, list[str]]:
    """Documentation excerpts for the message and their page paths.

    Augmentation is best effort: a failed search is logged and skipped.
    """
    if session is None:
        return None, []
    try:
        matches = await search_content(query=message, limit=limit, session=session)
    except Exception as e:
        logger.warning(f"[POST /api/chat] content search failed: {type(e).__name__}: {e}")
        return None, []
    if not matches:
        return None, []
    sources = list(dict.fromkeys(match.chunk.path for match in matches))
    return format_matches_for_prompt(matches), sources


@router.post("/chat", response_model=None)
async def chat(
    request: ChatRequest,
    client: Annotated[CompletionClient | None, Depends(get_completion_client)],
    session: Annotated[AsyncSession | None, Depends(get_optional_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> JSONResponse:
    """Answer a chat message.

    Returns:
        200 with the assistant reply, also when the completion API failed or
        timed out (the reply then explains the problem)
        400 if ``message`` is missing
        500 on unexpected failure
    """
    message = (request.message or "").strip()
    if not message:
        return JSONResponse(
            content={"error": "Missing message parameter"}, status_code=status.HTTP_400_BAD_REQUEST
        )

    try:
        context = request.context or ChatContext()
        model = context.model or settings.chat_model
        concept = detect_concept_query(message)

        if client is None:
            logger.warning("[POST /api/chat] completion client not configured")
            return _json(
                ChatResponse(
                    id=str(uuid.uuid4()),
                    content=NOT_CONFIGURED_REPLY,
                    timestamp=now_ms(),
                    metadata=MessageMetadata(type="error", model=model, error="not_configured"),
                )
            )

        docs_prompt, sources = (None, [])
        if context.include_docs:
            docs_prompt, sources = await find_docs(message, session, settings.content_search_limit)

        completion = CompletionRequest(
            model=model,
            messages=build_messages(
                message,
                request.messages,
                context,
                concept,
                docs_prompt,
                settings.chat_history_limit,
            ),
            temperature=0.7,
            max_tokens=settings.chat_max_tokens,
        )

        error: str | None = None
        try:
            content = await asyncio.wait_for(
                complete_text(client, completion, purpose="chat"),
                timeout=settings.chat_timeout_seconds,
            )
        except TimeoutError:
            logger.warning(
                f"[POST /api/chat] completion exceeded {settings.chat_timeout_seconds}s deadline"
            )
            content, error = TIMEOUT_REPLY, "timeout"
        except CompletionTimeoutError as e:
            logger.warning(f"[POST /api/chat] stream went idle: {e}")
            content = (
                f"{e.partial}\n\n_(The response was cut off because the AI service stopped "
                "responding.)_"
                if e.partial
                else TIMEOUT_REPLY
            )
            error = "timeout"
        except CompletionError as e:
            content, error = fallback_message(e), str(e)

        if error is not None:
            metadata = MessageMetadata(type="error", model=model, sources=sources, error=error)
        elif concept is not None:
            metadata = MessageMetadata(
                type="concept_explanation",
                topic=concept.topic,
                knowledge_level=concept.knowledge_level,
                contains_code=concept.include_code or "```" in content,
                model=model,
                sources=sources,
            )
        else:
            metadata = MessageMetadata(
                type="code_example" if "```" in content else "general",
                contains_code="```" in content,
                model=model,
                sources=sources,
            )

        return _json(
            ChatResponse(
                id=str(uuid.uuid4()),
                content=content,
                timestamp=now_ms(),
                metadata=metadata,
            )
        )
    except Exception as e:
        logger.exception(f"[POST /api/chat] unexpected error: {e}")
        return JSONResponse(
            content={"error": "An error occurred while processing your message"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
