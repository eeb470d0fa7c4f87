from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse

router = APIRouter()


def _page(request: Request, name: str) -> FileResponse:
    return FileResponse(Path(request.app.state.settings.STATIC_DIR) / name, media_type="text/html")


@router.get("/", include_in_schema=False)
def index(request: Request):
    return _page(request, "index.html")


@router.get("/control", include_in_schema=False)
def control(request: Request):
    return _page(request, "control.html")


@router.get("/captions", include_in_schema=False)
def captions(request: Request):
    return _page(request, "captions.html")


@router.get("/interim-captions", include_in_schema=False)
def interim_captions(request: Request):
    return _page(request, "interim-captions.html")
