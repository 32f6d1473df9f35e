import logging
from typing import Any, Literal

# load_dotenv() runs inside load_settings(), before the auth middleware reads
# the JWT configuration.
from settings import load_settings

import jwt as pyjwt
from auth import decode_token
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from certificate_pdf import build_renderer, save_pdf
from certificate_records import CertificateGenerationError, coerce_certificate

SETTINGS = load_settings()
RENDERER = build_renderer(SETTINGS)

logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger("certificate_api")

app = FastAPI(title="Certificate PDF API")

# ── CORS ──────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── AUTH MIDDLEWARE ────────────────────────────────────────────────────────────
# Public paths
_PUBLIC_API_PATHS: frozenset[str] = frozenset({
    "/api/health",
    "/api/list-fonts",
})


@app.middleware("http")
async def _auth_middleware(request: Request, call_next):
    """Reject unauthenticated calls to /api/* (except public endpoints)."""
    path = request.url.path
    if (
        not path.startswith("/api/")
        or path in _PUBLIC_API_PATHS
        or request.method == "OPTIONS"
    ):
        return await call_next(request)

    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return JSONResponse(
            status_code=401,
            content={"detail": "Missing or invalid Authorization header."},
        )

    token = auth_header.split(" ", 1)[1]
    try:
        decode_token(token, secret=SETTINGS.jwt_secret, jwks_url=SETTINGS.jwt_jwks_url)
    except pyjwt.ExpiredSignatureError:
        return JSONResponse(
            status_code=401,
            content={"detail": "Token has expired."},
            headers={"WWW-Authenticate": "Bearer"},
        )
    except pyjwt.InvalidTokenError as exc:
        return JSONResponse(
            status_code=401,
            content={"detail": f"Invalid token: {exc}"},
            headers={"WWW-Authenticate": "Bearer"},
        )

    return await call_next(request)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "message": "Request validation failed.",
            "detail": exc.errors(),
        },
    )


@app.exception_handler(CertificateGenerationError)
async def generation_exception_handler(request: Request, exc: CertificateGenerationError) -> JSONResponse:
    logger.error("Certificate generation failed: %s", exc)
    status_code = 422 if exc.invalid_input else 500
    detail = "Failed to generate certificate PDF." if SETTINGS.is_production else str(exc)
    return JSONResponse(
        status_code=status_code,
        content={"message": "Failed to generate certificate PDF.", "detail": detail},
    )


class CertificatePdfRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    certificate: dict[str, Any] | None = None
    template: dict[str, Any] | None = None
    locale: Literal["ar", "en"] | None = None
    force_default_layout: bool | None = Field(None, alias="forceDefaultLayout")


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


def render_request(request: CertificatePdfRequest) -> tuple[bytes, str]:
    certificate = coerce_certificate(request.certificate)
    pdf_bytes = RENDERER.render(
        certificate,
        request.template,
        locale=request.locale,
        force_default_layout=request.force_default_layout,
    )
    return pdf_bytes, certificate.certificate_number or "certificate"


@app.post("/api/certificates/pdf")
def certificate_pdf(request: CertificatePdfRequest) -> Response:
    pdf_bytes, number = render_request(request)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=certificate-{number}.pdf"},
    )


@app.post("/api/certificates/save")
def save_certificate_pdf(request: CertificatePdfRequest) -> dict[str, Any]:
    pdf_bytes, number = render_request(request)
    pdf_url = save_pdf(pdf_bytes, f"{number}.pdf", SETTINGS.certificates_dir)
    return {"pdfUrl": pdf_url, "size": len(pdf_bytes)}


@app.get("/api/list-fonts")
def list_fonts() -> dict[str, Any]:
    """List the font families the renderer knows and whether their files are present."""
    fonts = RENDERER.font_resolver.available_fonts()
    return {
        "fonts_directory": str(RENDERER.font_resolver.fonts_dir),
        "fonts_directory_exists": RENDERER.font_resolver.fonts_dir.exists(),
        "fonts": fonts,
        "count": len(fonts),
    }

