"""
seo_checker/routers/analysis_router.py — POST /api/analyze
Maps fatal AnalysisErrors onto HTTP status codes; degraded stages still
return 200 with a complete report.
"""
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from seo_checker.errors import AnalysisError
from seo_checker.models import AnalyzeRequest, AnalyzeResponse, Entitlement
from seo_checker.services.analyzer import SEOAnalyzer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Analysis"])

ERROR_STATUS = {
    "invalid_url": 400,
    "page_unreachable": 400,
    "render_engine": 500,
}


def get_analyzer(request: Request) -> SEOAnalyzer:
    return request.app.state.analyzer


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(req: AnalyzeRequest, request: Request):
    analyzer = get_analyzer(request)
    try:
        report = await analyzer.analyze(req.url, Entitlement(plan=req.plan))
    except AnalysisError as e:
        status = ERROR_STATUS.get(e.kind, 500)
        logger.info("Analysis of %s failed with %s (%d)", req.url, e.kind, status)
        return JSONResponse(status_code=status, content=e.to_dict())
    return {"success": True, "data": report.to_document()}
