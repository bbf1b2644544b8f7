"""
ZentriBank API Application Factory
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from .. import __version__
from ..errors import BankingError
from ..logging_config import get_logger, log_action
from .sessions import router as sessions_router
from .dashboard import router as dashboard_router
from .transfers import router as transfers_router
from .crypto import web_router as crypto_router, mobile_router as crypto_mobile_router
from .admin import router as admin_router
from .admin_crypto import router as admin_crypto_router


logger = get_logger("zentri.api")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="ZentriBank API",
        description="Retail banking backend with cash accounts and a simulated crypto wallet",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(BankingError)
    async def banking_error_handler(request: Request, exc: BankingError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(p) for p in e.get("loc", ())), "message": e.get("msg")}
            for e in exc.errors()
        ]
        return JSONResponse(status_code=400, content={"success": False, "error": "Invalid request", "errors": errors})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        log_action(
            logger, "error", f"Unhandled error: {exc}",
            action="unhandled_error", resource=request.url.path,
            extra={"error_type": type(exc).__name__}
        )
        return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})

    app.include_router(sessions_router, prefix="/api/auth", tags=["Auth"])
    app.include_router(dashboard_router, prefix="/api/user", tags=["Dashboard"])
    app.include_router(transfers_router, prefix="/api/transfers", tags=["Transfers"])
    app.include_router(crypto_mobile_router, prefix="/api/crypto/mobile", tags=["Crypto Mobile"])
    app.include_router(crypto_router, prefix="/api/crypto", tags=["Crypto"])
    app.include_router(admin_crypto_router, prefix="/api/admin/crypto", tags=["Admin Crypto"])
    app.include_router(admin_router, prefix="/api/admin", tags=["Admin"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "success": True,
            "status": "healthy",
            "service": "zentri_bank_api",
            "version": __version__
        }

    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "success": True,
            "name": "ZentriBank API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "auth": "/api/auth",
                "dashboard": "/api/user/dashboard",
                "transfers": "/api/transfers",
                "crypto": "/api/crypto",
                "crypto_mobile": "/api/crypto/mobile",
                "admin": "/api/admin",
            }
        }

    return app


app = create_app()


def run_server(host: str = "0.0.0.0", port: int = 8090, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "zentri_bank.api:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )
