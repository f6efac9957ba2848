from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from .auth.dependencies import (
    SESSION_TOKEN_KEY,
    get_auth,
    get_current_user,
    get_session_token,
    require_user,
)
from .auth.models import LoginRequest, SignupRequest, UserOut
from .auth.service import AuthSessionManager
from .auth.sessions import SessionStore
from .auth.users import User, UserStore
from .config import DEFAULT_APP_CONFIG, AppConfig
from .errors import ComfortBitesError, NotFoundError
from .recipes.cache import TTLCache
from .recipes.data_store import RecipeStore
from .recipes.models import FilterOptions, FilterRequest, RecipeOut
from .recipes.views import to_views, with_instructions_fallback

logger = logging.getLogger(__name__)


async def _sweep_sessions(sessions: SessionStore, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        sessions.sweep()


def get_recipe_store(request: Request) -> RecipeStore:
    return request.app.state.recipes


def get_user_store(request: Request) -> UserStore:
    return request.app.state.users


def _user_out(user: User) -> UserOut:
    return UserOut(id=user.id, username=user.username, favorites=user.favorites)


def create_app(config: AppConfig = DEFAULT_APP_CONFIG) -> FastAPI:
    logging.getLogger("comfort_bites").setLevel(config.log_level)

    sessions = SessionStore(ttl_seconds=config.session_ttl_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper = asyncio.create_task(_sweep_sessions(sessions, config.session_sweep_seconds))
        yield
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper

    app = FastAPI(title="Comfort Bites Recipe API", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        SessionMiddleware,
        secret_key=config.session_secret,
        max_age=config.session_ttl_seconds,
    )

    users = UserStore(config.database_url, bcrypt_rounds=config.bcrypt_rounds)
    app.state.users = users
    app.state.sessions = sessions
    app.state.auth = AuthSessionManager(users, sessions)
    app.state.recipes = RecipeStore(
        config.recipes_path,
        result_limit=config.recipe_result_limit,
        ingredient_sample_size=config.ingredient_sample_size,
        options_cache=TTLCache(ttl_seconds=config.filter_options_ttl_seconds),
    )

    # ── Error translation ────────────────────────────────────────────────

    @app.exception_handler(ComfortBitesError)
    async def domain_error(request: Request, exc: ComfortBitesError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = str(errors[0].get("msg", "")) if errors else ""
        message = message.removeprefix("Value error, ") or "Invalid request"
        return JSONResponse(status_code=400, content={"detail": message})

    # ── Public endpoints ─────────────────────────────────────────────────

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    # ── Diagnostics ──────────────────────────────────────────────────────

    @app.get("/cache/stats")
    def cache_stats(
        store: RecipeStore = Depends(get_recipe_store),
        user: User = Depends(require_user),
    ) -> dict:
        return store.cache_stats()

    # ── Auth endpoints ───────────────────────────────────────────────────

    @app.post("/auth/signup", response_model=UserOut, status_code=201)
    def signup(
        body: SignupRequest,
        request: Request,
        auth: AuthSessionManager = Depends(get_auth),
    ) -> UserOut:
        session = auth.signup(body.username, body.password, get_session_token(request))
        request.session[SESSION_TOKEN_KEY] = session.token
        return _user_out(session.user)

    @app.post("/auth/login", response_model=UserOut)
    def login(
        body: LoginRequest,
        request: Request,
        auth: AuthSessionManager = Depends(get_auth),
    ) -> UserOut:
        session = auth.login(body.username, body.password, get_session_token(request))
        request.session[SESSION_TOKEN_KEY] = session.token
        return _user_out(session.user)

    @app.get("/auth/user", response_model=UserOut)
    def auth_user(user: User = Depends(require_user)) -> UserOut:
        return _user_out(user)

    @app.post("/auth/logout")
    def logout(request: Request, auth: AuthSessionManager = Depends(get_auth)) -> dict:
        auth.logout(get_session_token(request))
        request.session.clear()
        return {"status": "logged_out"}

    # ── Recipe endpoints ─────────────────────────────────────────────────

    @app.get("/recipes", response_model=list[RecipeOut])
    def list_recipes(
        diet_category: list[str] | None = Query(default=None, alias="dietCategory"),
        cooking_method: list[str] | None = Query(default=None, alias="cookingMethod"),
        cuisine: list[str] | None = Query(default=None),
        ingredients: list[str] | None = Query(default=None),
        max_time: int | None = Query(default=None, alias="maxTime", ge=0),
        store: RecipeStore = Depends(get_recipe_store),
        user: User | None = Depends(get_current_user),
    ) -> list[RecipeOut]:
        params = (diet_category, cooking_method, cuisine, ingredients, max_time)
        filters = None
        if any(p is not None for p in params):
            filters = FilterRequest(
                diet_category=diet_category,
                cooking_method=cooking_method,
                cuisine=cuisine,
                ingredients=ingredients,
                max_time=max_time,
            )
        recipes = store.get_recipes(filters)
        return to_views(recipes, user.favorites if user else None)

    @app.get("/recipes/filters/options", response_model=FilterOptions)
    def filter_options(store: RecipeStore = Depends(get_recipe_store)) -> FilterOptions:
        return store.get_filter_options()

    @app.get("/recipes/favorites", response_model=list[RecipeOut])
    def favorite_recipes(
        store: RecipeStore = Depends(get_recipe_store),
        user: User = Depends(require_user),
    ) -> list[RecipeOut]:
        recipes = [r for r in (store.get_recipe_by_id(rid) for rid in user.favorites) if r is not None]
        return to_views(recipes, user.favorites)

    @app.get("/recipes/{recipe_id}", response_model=RecipeOut)
    def get_recipe(
        recipe_id: str,
        store: RecipeStore = Depends(get_recipe_store),
        user: User | None = Depends(get_current_user),
    ) -> RecipeOut:
        recipe = store.get_recipe_by_id(recipe_id)
        if recipe is None:
            raise NotFoundError()
        view = to_views([recipe], user.favorites if user else None)[0]
        return with_instructions_fallback(view)

    @app.post("/recipes/{recipe_id}/like", response_model=RecipeOut)
    def like_recipe(
        recipe_id: str,
        store: RecipeStore = Depends(get_recipe_store),
        users: UserStore = Depends(get_user_store),
        user: User = Depends(require_user),
    ) -> RecipeOut:
        view = store.toggle_like(recipe_id, liked=True)
        if view is None:
            raise NotFoundError()

        updated = users.add_favorite(user.id, view.id)
        if updated is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return view.model_copy(update={"liked": view.id in updated.favorites})

    @app.post("/recipes/{recipe_id}/unlike", response_model=RecipeOut)
    def unlike_recipe(
        recipe_id: str,
        store: RecipeStore = Depends(get_recipe_store),
        users: UserStore = Depends(get_user_store),
        user: User = Depends(require_user),
    ) -> RecipeOut:
        view = store.toggle_like(recipe_id, liked=False)
        if view is None:
            raise NotFoundError()

        updated = users.remove_favorite(user.id, view.id)
        if updated is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return view.model_copy(update={"liked": view.id in updated.favorites})

    return app


app = create_app()
