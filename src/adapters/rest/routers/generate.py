"""Recipe generation endpoint: conversation → stored, safe recipe."""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from factory import ServiceFactory
from domain.exceptions import (
    ConversationNotFoundError,
    ExhaustionError,
    IntentExtractionError,
    NoCandidatesError,
    OffTopicIntentError,
)
from application.services.recipe_generation import (
    NO_CANDIDATES_MESSAGE,
    OFF_TOPIC_MESSAGE,
    failure_message_for,
)
from adapters.rest.dependencies import get_factory
from adapters.rest.schemas import GenerateRecipeBody

router = APIRouter(tags=["generation"])


def _error(status_code: int, error: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, **extra})


@router.post("/generate-recipe", status_code=201)
async def generate_recipe(
    body: GenerateRecipeBody,
    factory: ServiceFactory = Depends(get_factory),
):
    if not body.conversation_id or not body.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="conversationID and userID are required",
        )

    service = factory.create_generation_service()
    try:
        result = await service.generate_from_conversation(
            body.user_id, body.conversation_id, include_pantry=body.include_pantry,
        )
    except OffTopicIntentError as exc:
        return _error(
            400,
            "Off-topic conversation",
            message=OFF_TOPIC_MESSAGE,
            intent={
                "dish": exc.intent.dish,
                "searchQuery": exc.intent.search_query,
                "status": exc.intent.status.value,
            },
        )
    except ConversationNotFoundError as exc:
        return _error(404, "Conversation not found", message=str(exc))
    except NoCandidatesError as exc:
        return _error(500, NO_CANDIDATES_MESSAGE, details=str(exc))
    except ExhaustionError as exc:
        return _error(
            500,
            "Failed to retrieve recipe",
            message=failure_message_for(exc.last_error),
            details=str(exc),
            attemptedUrls=exc.attempted_urls,
        )
    except IntentExtractionError as exc:
        return _error(500, "Failed to understand the conversation", details=str(exc))

    return result.to_dict()
