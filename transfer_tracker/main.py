from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from transfer_tracker.errors import AuthorizationError, NotFoundError, StoreUnavailableError, ValidationError
from transfer_tracker.logging_config import configure_logging
from transfer_tracker.routers import transfers
from transfer_tracker.security.identity import install_identity_middleware

configure_logging()

app = FastAPI(title='Phone Repair Transfer Tracker')

install_identity_middleware(app)

app.include_router(transfers.router)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        {'detail': exc.message, 'errors': exc.errors},
        status_code=422,
    )


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(request: Request, exc: AuthorizationError):
    return JSONResponse({'detail': str(exc) or 'Access denied'}, status_code=status.HTTP_403_FORBIDDEN)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse({'detail': 'Transfer not found'}, status_code=status.HTTP_404_NOT_FOUND)


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    return JSONResponse({'detail': str(exc)}, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


@app.get('/health')
def health() -> dict:
    return {'status': 'ok'}
