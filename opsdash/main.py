from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from opsdash.config import configure_logging
from opsdash.routers import auth, dashboard, expenses, orders, settings
from opsdash.security.headers import install_security_headers
from opsdash.security.sessions import install_auth_session_middleware

configure_logging()

app = FastAPI(title='Business Operations Dashboard')


@app.exception_handler(StarletteHTTPException)
async def http_error_envelope(request: Request, exc: StarletteHTTPException):
    return JSONResponse({'error': str(exc.detail)}, status_code=exc.status_code, headers=getattr(exc, 'headers', None))


@app.exception_handler(RequestValidationError)
async def validation_error_envelope(request: Request, exc: RequestValidationError):
    return JSONResponse({'error': 'Invalid request parameters'}, status_code=400)


install_auth_session_middleware(app)
install_security_headers(app)

app.include_router(auth.router)
app.include_router(dashboard.router)
app.include_router(orders.router)
app.include_router(expenses.router)
app.include_router(settings.router)


@app.get('/health')
def health():
    return {'ok': True}
