# hackmate/ai/ai_router.py
import logging

from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse

from hackmate.ai.ai_service import (
    AIService,
    AIServiceError,
    AIServiceInvalidResponseError,
    AIServiceTimeoutError,
    UnknownActionError,
)
from hackmate.ai.docs_export import docs_filename
from hackmate.schemas.ai_schema import AIRequest, DocsExportRequest

logger = logging.getLogger("hackmate.ai")

router = APIRouter(prefix="/api", tags=["ai"])


# ==========================
#  GATEWAY: {action, data} -> {result} | {error}
# ==========================
@router.post("/ai")
def ai_gateway(request: AIRequest):
    ai_service = AIService()

    try:
        result = ai_service.run(request.action, request.data)
    except UnknownActionError as exc:
        return JSONResponse(status_code=400, content={"error": str(exc)})
    except AIServiceTimeoutError:
        logger.error("ai_timeout", extra={"action": request.action, "error_type": "timeout"})
        return JSONResponse(status_code=504, content={"error": "AI service timed out, please try again later"})
    except AIServiceInvalidResponseError:
        logger.error("ai_invalid_response", extra={"action": request.action, "error_type": "invalid_response"})
        return JSONResponse(status_code=502, content={"error": "AI produced an invalid response"})
    except AIServiceError:
        logger.exception("ai_service_error", extra={"action": request.action, "error_type": "service_error"})
        return JSONResponse(status_code=502, content={"error": "AI service failure"})

    return {"result": result}


# ==========================
#  MARKDOWN DOWNLOAD
# ==========================
@router.post("/docs/export")
def export_docs(request: DocsExportRequest):
    filename = docs_filename(request.project_name)
    return Response(
        content=request.content,
        media_type="text/markdown",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
