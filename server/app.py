"""FastAPI application -- routes for the Design Vault catalogue and study service."""

import logging
from contextlib import asynccontextmanager
from typing import Any, List, Optional

from fastapi import Body, Cookie, Depends, FastAPI, File, HTTPException, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session as DBSession

from server.__version__ import __version__
from server.auth import SESSION_COOKIE, SESSION_MAX_AGE, get_current_user, get_current_user_optional
from server.config import Settings
from server.db.models import User
from server.dependencies import get_db_session, get_settings
from server.schemas import (
    AssetIngestResponse,
    AssetSchema,
    CategoryCreate,
    CategoryNode,
    CategoryResponse,
    CategoryUpdate,
    CoinsRequest,
    CollectibleRequest,
    DescendantsResponse,
    DueItemsResponse,
    ExportBundle,
    GradeRequest,
    ImportResponse,
    ItemPayload,
    ItemProgressResponse,
    ItemResponse,
    LoginRequest,
    MessageResponse,
    OwnershipResponse,
    ProfileResponse,
    RegisterRequest,
    ResetResponse,
    SeedResponse,
    SessionRecordRequest,
    SessionStatResponse,
    SessionStatsResponse,
    ThemeRequest,
    UpgradeRequest,
    UserResponse,
)
from server.services import (
    auth_service,
    category_service,
    item_service,
    profile_service,
    progress_service,
    seed_service,
    transfer_service,
    upload_service,
)
from vault.errors import CategoryGuardError, NotFoundError, UpstreamError, ValidationError, VaultError
from vault.ledger import accuracy_of
from vault.models import SessionStat, to_iso, utc_now
from vault.transfer import EXPORT_FILENAME

logger = logging.getLogger("vault")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan: create tables, nothing else."""
    from server.db.session import init_db
    init_db(get_settings())
    logger.info("Design Vault API %s: startup", __version__)
    yield
    logger.info("Design Vault API: shutdown")


app = FastAPI(title="Design Vault", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=Settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---- Error translation ----

@app.exception_handler(NotFoundError)
def _not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(ValidationError)
def _invalid(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(CategoryGuardError)
def _guarded(request: Request, exc: CategoryGuardError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(UpstreamError)
def _upstream(request: Request, exc: UpstreamError):
    return JSONResponse(status_code=502, content={"detail": exc.message})


@app.exception_handler(VaultError)
def _vault_error(request: Request, exc: VaultError):
    logger.error("Unhandled %s: %s", type(exc).__name__, exc.message)
    return JSONResponse(status_code=500, content={"detail": exc.message})


@app.exception_handler(Exception)
def _unexpected(request: Request, exc: Exception):
    logger.exception("Unexpected error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ---- Auth ----

def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        max_age=SESSION_MAX_AGE,
        httponly=True,
        secure=False,
        samesite="lax",
    )


@app.post("/auth/register", response_model=UserResponse)
def auth_register(body: RegisterRequest, response: Response, db: DBSession = Depends(get_db_session)):
    user = auth_service.register_user(db, body.email, body.password)
    _set_session_cookie(response, auth_service.create_session(db, user.id))
    return {"id": user.id, "email": user.email}


@app.post("/auth/login", response_model=UserResponse)
def auth_login(body: LoginRequest, response: Response, db: DBSession = Depends(get_db_session)):
    user = auth_service.authenticate(db, body.email, body.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    _set_session_cookie(response, auth_service.create_session(db, user.id))
    return {"id": user.id, "email": user.email}


@app.post("/auth/logout")
def auth_logout(
    response: Response,
    vault_session: Optional[str] = Cookie(None, alias=SESSION_COOKIE),
    db: DBSession = Depends(get_db_session),
):
    auth_service.logout_session(db, vault_session)
    response.delete_cookie(SESSION_COOKIE)
    return {"ok": True}


@app.get("/auth/me", response_model=UserResponse)
def auth_me(user: User = Depends(get_current_user)):
    return {"id": user.id, "email": user.email}


# ---- Health (no dependencies, always fast) ----

@app.get("/health")
def health():
    return {"status": "ok", "timestamp": to_iso(utc_now())}


# ---- Items ----

@app.get("/items", response_model=List[ItemResponse])
def list_items(
    query: Optional[str] = None,
    category: Optional[str] = None,
    tags: Optional[str] = None,
    db: DBSession = Depends(get_db_session),
):
    items = item_service.query_items(db, text=query, category_id=category, tags=tags)
    return [item.to_dict() for item in items]


@app.get("/items/export", response_model=ExportBundle)
def export_items(response: Response, db: DBSession = Depends(get_db_session)):
    response.headers["Content-Disposition"] = f"attachment; filename={EXPORT_FILENAME}"
    return transfer_service.export_items(db)


@app.post("/items/import", response_model=ImportResponse)
def import_items(payload: Any = Body(None), db: DBSession = Depends(get_db_session)):
    return transfer_service.import_items(db, payload)


@app.get("/items/{item_id}", response_model=ItemResponse)
def get_item(item_id: str, db: DBSession = Depends(get_db_session)):
    return item_service.get_item(db, item_id).to_dict()


@app.post("/items", response_model=ItemResponse, status_code=201)
def create_item(body: ItemPayload, db: DBSession = Depends(get_db_session)):
    return item_service.create_item(db, body.model_dump(exclude_unset=True)).to_dict()


@app.put("/items/{item_id}", response_model=ItemResponse)
def update_item(item_id: str, body: ItemPayload, db: DBSession = Depends(get_db_session)):
    return item_service.update_item(db, item_id, body.model_dump(exclude_unset=True)).to_dict()


@app.delete("/items/{item_id}", status_code=204)
def delete_item(item_id: str, db: DBSession = Depends(get_db_session)):
    item_service.delete_item(db, item_id)
    return Response(status_code=204)


@app.get("/tags", response_model=List[str])
def list_tags(db: DBSession = Depends(get_db_session)):
    return item_service.list_tags(db)


# ---- Categories ----

@app.get("/categories", response_model=List[CategoryResponse])
def list_categories(db: DBSession = Depends(get_db_session)):
    return [c.to_dict() for c in category_service.list_flat(db)]


@app.get("/categories/tree", response_model=List[CategoryNode])
def category_tree(db: DBSession = Depends(get_db_session)):
    return category_service.build_tree(db)


@app.post("/categories", response_model=CategoryResponse, status_code=201)
def create_category(body: CategoryCreate, db: DBSession = Depends(get_db_session)):
    return category_service.create_category(db, body.name, body.parent_id).to_dict()


@app.put("/categories/{category_id}", response_model=CategoryResponse)
def update_category(category_id: str, body: CategoryUpdate, db: DBSession = Depends(get_db_session)):
    parent_id = body.parent_id if "parent_id" in body.model_fields_set else category_service.UNSET
    return category_service.update_category(db, category_id, name=body.name, parent_id=parent_id).to_dict()


@app.delete("/categories/{category_id}", status_code=204)
def delete_category(category_id: str, db: DBSession = Depends(get_db_session)):
    category_service.delete_category(db, category_id)
    return Response(status_code=204)


@app.get("/categories/{category_id}/descendants", response_model=DescendantsResponse)
def category_descendants(category_id: str, db: DBSession = Depends(get_db_session)):
    return {"categoryId": category_id, "ids": category_service.descendants_of(db, category_id)}


# ---- Assets ----

@app.post("/assets/ingest", response_model=AssetIngestResponse, status_code=201)
def ingest_asset(payload: Any = Body(None), db: DBSession = Depends(get_db_session)):
    return upload_service.ingest_asset(db, payload)


@app.post("/assets/upload", response_model=AssetSchema)
def upload_asset(file: UploadFile = File(...), settings: Settings = Depends(get_settings)):
    """Forward one image to the upload provider; returns the Asset to embed in an item."""
    if file.content_type and not file.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="File must be an image")
    content = file.file.read()
    if len(content) > settings.max_upload_size_mb * 1024 * 1024:
        raise HTTPException(status_code=413, detail="File too large")
    asset = upload_service.upload_image(
        settings,
        file.filename or "upload",
        content,
        file.content_type or "application/octet-stream",
    )
    return asset.to_dict()


# ---- Flashcards / progress ----

@app.post("/flashcards/grade", response_model=MessageResponse)
def grade_item(body: GradeRequest, db: DBSession = Depends(get_db_session)):
    progress_service.record_grade(db, body.item_id, body.grade, body.timestamp)
    return {"message": "Grade recorded"}


@app.get("/flashcards/progress/{item_id}", response_model=ItemProgressResponse)
def item_progress(item_id: str, db: DBSession = Depends(get_db_session)):
    return progress_service.item_progress(db, item_id)


@app.delete("/flashcards/progress", response_model=ResetResponse)
def reset_progress(db: DBSession = Depends(get_db_session)):
    return progress_service.reset_progress(db)


@app.get("/flashcards/due", response_model=DueItemsResponse)
def due_items(db: DBSession = Depends(get_db_session)):
    return progress_service.get_due_items(db)


@app.post("/flashcards/sessions", response_model=SessionStatResponse, status_code=201)
def record_session(
    body: SessionRecordRequest,
    db: DBSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
    user: Optional[User] = Depends(get_current_user_optional),
):
    """
    Store a finished session. Accuracy and coins are derived from the grade
    counts when the client leaves them out; a signed-in user is credited
    the coins.
    """
    coins = body.coins_earned
    if coins is None:
        counts = {"again": body.again, "good": body.good, "easy": body.easy}
        coins = sum(settings.coin_rewards[g] * n for g, n in counts.items())
    accuracy = body.accuracy
    if accuracy is None:
        accuracy = round(accuracy_of(body.again, body.good, body.easy), 4)

    stat = SessionStat(
        mode=body.mode,
        total_cards=body.total_cards,
        again=body.again,
        good=body.good,
        easy=body.easy,
        accuracy=accuracy,
        duration_seconds=body.duration_seconds,
        coins_earned=coins,
        timestamp=to_iso(body.timestamp) if body.timestamp else None,
    )
    saved = progress_service.record_session(db, stat, user_id=user.id if user else None)
    if user is not None and coins:
        profile_service.add_coins(db, user.id, coins)
    return saved.to_dict()


@app.get("/flashcards/sessions", response_model=List[SessionStatResponse])
def list_sessions(db: DBSession = Depends(get_db_session)):
    return [s.to_dict() for s in progress_service.list_sessions(db)]


@app.get("/flashcards/sessions/stats", response_model=SessionStatsResponse)
def session_stats(db: DBSession = Depends(get_db_session)):
    return progress_service.get_session_stats(db)


# ---- Profile ----

@app.get("/profile", response_model=ProfileResponse)
def get_profile(user: User = Depends(get_current_user), db: DBSession = Depends(get_db_session)):
    return profile_service.get_profile(db, user.id)


@app.post("/profile/coins", response_model=ProfileResponse)
def add_coins(body: CoinsRequest, user: User = Depends(get_current_user), db: DBSession = Depends(get_db_session)):
    return profile_service.add_coins(db, user.id, body.amount)


@app.post("/profile/collectibles", response_model=ProfileResponse)
def add_collectible(
    body: CollectibleRequest,
    user: User = Depends(get_current_user),
    db: DBSession = Depends(get_db_session),
):
    return profile_service.add_collectible(db, user.id, body.collectible_id)


@app.post("/profile/upgrades", response_model=ProfileResponse)
def add_upgrade(body: UpgradeRequest, user: User = Depends(get_current_user), db: DBSession = Depends(get_db_session)):
    return profile_service.add_upgrade(db, user.id, body.upgrade_id, body.value)


@app.put("/profile/theme", response_model=ProfileResponse)
def set_theme(body: ThemeRequest, user: User = Depends(get_current_user), db: DBSession = Depends(get_db_session)):
    return profile_service.set_background_theme(db, user.id, body.theme)


@app.get("/profile/owns/{item_id}", response_model=OwnershipResponse)
def owns(item_id: str, user: User = Depends(get_current_user), db: DBSession = Depends(get_db_session)):
    profile = profile_service.get_profile(db, user.id)
    return {"itemId": item_id, "owned": profile_service.owns(profile, item_id)}


# ---- Dev ----

@app.post("/dev/seed", response_model=SeedResponse)
def dev_seed(db: DBSession = Depends(get_db_session)):
    return seed_service.seed(db)
