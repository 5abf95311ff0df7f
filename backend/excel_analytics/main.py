# backend/excel_analytics/main.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from . import config
from .ingest import DecodeError, decode, ensure_small_file
from .policy import Decision, Role, authorize, parse_role
from .schemas import (
    Account,
    AccountOut,
    Credentials,
    InsightsRequest,
    LoginResponse,
    RoleUpdate,
    UploadRecord,
    UploadSummary,
)
from .security import InvalidToken, hash_password, issue_token, verify_password, verify_token
from .store import DuplicateUsername, MemoryStore, Store
from .summary import summarize

logger = logging.getLogger("excel_analytics")
logging.basicConfig(level=config.LOG_LEVEL)

bearer = HTTPBearer(auto_error=False)
router = APIRouter(prefix="/api")


def get_store(request: Request) -> Store:
    return request.app.state.store


def current_account(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    store: Store = Depends(get_store),
) -> Account:
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=401, detail="No token")
    try:
        claims = verify_token(creds.credentials)
    except InvalidToken:
        raise HTTPException(status_code=401, detail="Invalid token")
    account = store.get_account(str(claims.get("sub", "")))
    if account is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    return account


def require_role(required: Role):
    def dependency(account: Account = Depends(current_account)) -> Account:
        if authorize(account.role, required) is Decision.DENY:
            raise HTTPException(status_code=403, detail="Admin only")
        return account
    return dependency


@router.post("/register")
def register(body: Credentials, store: Store = Depends(get_store)):
    if not body.username or not body.password:
        raise HTTPException(status_code=400, detail="Username and password required")
    if store.find_account_by_username(body.username) is not None:
        raise HTTPException(status_code=400, detail="Username already exists")
    account = Account(username=body.username, password_hash=hash_password(body.password))
    try:
        store.save_account(account)
    except DuplicateUsername:
        raise HTTPException(status_code=400, detail="Username already exists")
    logger.info("Registered user %s", account.username)
    return {"message": "User registered"}


@router.post("/login", response_model=LoginResponse)
def login(body: Credentials, store: Store = Depends(get_store)):
    account = store.find_account_by_username(body.username or "")
    if account is None or not verify_password(body.password or "", account.password_hash):
        raise HTTPException(status_code=400, detail="Invalid credentials")
    token = issue_token({"sub": account.id, "role": account.role.value})
    return {"token": token, "role": account.role}


@router.post("/upload", response_model=UploadSummary)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    account: Account = Depends(require_role(Role.USER)),
    store: Store = Depends(get_store),
):
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")
    ensure_small_file(file, config.MAX_UPLOAD_BYTES)
    contents = await file.read()
    try:
        rows = decode(contents)
    except DecodeError as e:
        logger.warning("Rejected upload %r from %s: %s", file.filename, account.username, e)
        raise HTTPException(status_code=400, detail=f"Failed to process file: {e}")
    summary = summarize(rows)
    record = UploadRecord.create(owner=account.id, filename=file.filename or "", rows=rows, summary=summary)
    store.save_upload(record)
    logger.info("Stored upload %s (%d rows) for %s", record.id, len(rows), account.username)
    return {
        "message": "File uploaded and data stored",
        "id": record.id,
        "rowCount": len(rows),
        "analysis": summary,
    }


@router.get("/history")
async def history(account: Account = Depends(require_role(Role.USER)), store: Store = Depends(get_store)):
    return {"uploads": store.list_uploads_by_owner(account.id)}


@router.get("/analytics")
async def analytics(_: Account = Depends(require_role(Role.ADMIN)), store: Store = Depends(get_store)):
    data = [row for up in store.list_uploads() for row in up.rows]
    if not data:
        return {"summary": None, "data": []}
    return {"summary": summarize(data), "data": data}


@router.get("/admin/users")
async def list_users(_: Account = Depends(require_role(Role.ADMIN)), store: Store = Depends(get_store)):
    users = [AccountOut(id=a.id, username=a.username, role=a.role) for a in store.list_accounts()]
    return {"users": users}


@router.put("/admin/users/{user_id}/role")
async def update_role(
    user_id: str,
    body: RoleUpdate,
    admin: Account = Depends(require_role(Role.ADMIN)),
    store: Store = Depends(get_store),
):
    role = parse_role(body.role)
    if role is None:
        raise HTTPException(status_code=400, detail="Invalid role")
    if not store.update_account_role(user_id, role):
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("%s set role of %s to %s", admin.username, user_id, role.value)
    return {"message": "Role updated"}


@router.delete("/admin/users/{user_id}")
async def delete_user(
    user_id: str,
    admin: Account = Depends(require_role(Role.ADMIN)),
    store: Store = Depends(get_store),
):
    if not store.delete_account(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("%s deleted user %s", admin.username, user_id)
    return {"message": "User deleted"}


@router.post("/ai/insights")
async def ai_insights(body: InsightsRequest, _: Account = Depends(require_role(Role.USER))):
    # placeholder until an insights provider is wired in
    return {"insights": "Smart insights will appear here (AI integration pending)."}


def create_app(store: Optional[Store] = None) -> FastAPI:
    app = FastAPI(title="Excel Analytics API")
    app.state.store = store if store is not None else MemoryStore()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', 'invalid')}" for err in exc.errors()
        )
        return JSONResponse(status_code=400, content={"error": f"Invalid request: {problems}"})

    @app.exception_handler(Exception)
    async def all_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/")
    async def root():
        return {"message": "Backend is running!"}

    app.include_router(router)
    return app


app = create_app()
