import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from auth import AdminCredentials, Authenticator, TokenService, bearer_token
from catalog import CatalogStore
from config import Settings
from database import MongoCatalogBackend, connect
from errors import AuthenticationError, ImportNotConfigured, ProjectNotFound, UpstreamError
from github_import import GitHubClient, GitHubImporter
from schemas import LearningUpdate, LoginRequest, ProjectCreate, ProjectUpdate, SkillsUpdate, Token

logger = logging.getLogger("portfolio.api")


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger("portfolio")
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        root.addHandler(handler)
    root.propagate = False
    root.setLevel(level)


# ============
# Dependencies
# ============
def get_store(request: Request) -> CatalogStore:
    return request.app.state.store


def get_authenticator(request: Request) -> Authenticator:
    return request.app.state.auth


def get_importer(request: Request) -> GitHubImporter:
    return request.app.state.importer


def get_current_admin(
    authorization: Optional[str] = Header(None),
    auth: Authenticator = Depends(get_authenticator),
) -> str:
    if not auth.is_authenticated(authorization):
        raise HTTPException(status_code=401, detail="Not authenticated", headers={"WWW-Authenticate": "Bearer"})
    return auth.credentials.username


# ==============
# Error handlers
# ==============
async def _validation_failed(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "detail": "Validation failed", "errors": jsonable_encoder(exc.errors())},
    )


async def _invalid_credentials(request: Request, exc: AuthenticationError) -> JSONResponse:
    return JSONResponse(status_code=401, content={"success": False, "detail": "Invalid credentials"})


async def _project_not_found(request: Request, exc: ProjectNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"success": False, "detail": "Project not found"})


async def _upstream_failed(request: Request, exc: UpstreamError) -> JSONResponse:
    return JSONResponse(status_code=502, content={"success": False, "detail": "Failed to refresh GitHub data"})


async def _import_not_configured(request: Request, exc: ImportNotConfigured) -> JSONResponse:
    return JSONResponse(status_code=503, content={"success": False, "detail": "GitHub import is not configured"})


async def _internal_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "detail": "Internal server error"})


# ===========
# App factory
# ===========
def create_app(
    settings: Optional[Settings] = None,
    store: Optional[CatalogStore] = None,
    github: Optional[GitHubClient] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    if store is None:
        db = connect(settings.database_url, settings.database_name)
        store = CatalogStore(MongoCatalogBackend(db) if db is not None else None)

    credentials = AdminCredentials(
        settings.admin_username,
        password=settings.admin_password,
        password_hash=settings.admin_password_hash,
    )
    tokens = TokenService(settings.jwt_secret, settings.admin_username, ttl=timedelta(hours=settings.token_ttl_hours))
    github = github or GitHubClient(token=settings.github_token, timeout=settings.github_timeout_seconds)
    importer = GitHubImporter(github, store, settings.github_username)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.load()
        if importer.configured and settings.github_import_on_startup:
            try:
                await run_in_threadpool(importer.refresh)
            except (UpstreamError, ImportNotConfigured):
                logger.warning("Startup GitHub import failed, serving stored catalog")
        yield
        store.close()

    app = FastAPI(title="Portfolio API", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.auth = Authenticator(credentials, tokens)
    app.state.importer = importer

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, _validation_failed)
    app.add_exception_handler(AuthenticationError, _invalid_credentials)
    app.add_exception_handler(ProjectNotFound, _project_not_found)
    app.add_exception_handler(UpstreamError, _upstream_failed)
    app.add_exception_handler(ImportNotConfigured, _import_not_configured)
    app.add_exception_handler(Exception, _internal_error)

    register_routes(app)
    return app


# ======
# Routes
# ======
def register_routes(app: FastAPI) -> None:
    @app.get("/")
    def root():
        return {"status": "ok", "service": "portfolio-api"}

    @app.get("/api/health")
    def health(request: Request):
        backend = request.app.state.store.backend
        if backend is None:
            return {"backend": "running", "database": "not-configured", "collections": []}
        try:
            collections = backend.collections()
        except Exception:
            logger.warning("Database health check failed", exc_info=True)
            return {"backend": "running", "database": "not-available", "collections": []}
        return {"backend": "running", "database": "connected", "collections": collections[:10]}

    # Auth
    @app.post("/api/auth/login", response_model=Token)
    def login(data: LoginRequest, auth: Authenticator = Depends(get_authenticator)):
        return Token(token=auth.login(data.username, data.password))

    @app.post("/api/auth/logout")
    def logout(
        authorization: Optional[str] = Header(None),
        _: str = Depends(get_current_admin),
        auth: Authenticator = Depends(get_authenticator),
    ):
        auth.logout(bearer_token(authorization))
        return {"success": True}

    @app.get("/api/auth/verify")
    def verify(authorization: Optional[str] = Header(None), auth: Authenticator = Depends(get_authenticator)):
        return {"success": True, "valid": auth.is_authenticated(authorization)}

    # Public
    @app.get("/api/data")
    def public_data(store: CatalogStore = Depends(get_store)):
        return store.snapshot().to_wire()

    # Dashboard
    @app.get("/api/dashboard/data")
    def dashboard_data(_: str = Depends(get_current_admin), store: CatalogStore = Depends(get_store)):
        snapshot = store.snapshot().to_wire()
        snapshot["stats"] = store.stats()
        return snapshot

    @app.post("/api/dashboard/projects")
    def create_project(
        project: ProjectCreate,
        _: str = Depends(get_current_admin),
        store: CatalogStore = Depends(get_store),
    ):
        created = store.create_project(project)
        return {"success": True, "project": created.model_dump(by_alias=True)}

    @app.get("/api/dashboard/projects/{project_id}")
    def get_project(project_id: int, _: str = Depends(get_current_admin), store: CatalogStore = Depends(get_store)):
        return store.get_project(project_id).model_dump(by_alias=True)

    @app.put("/api/dashboard/projects/{project_id}")
    def update_project(
        project_id: int,
        fields: ProjectUpdate,
        _: str = Depends(get_current_admin),
        store: CatalogStore = Depends(get_store),
    ):
        updated = store.update_project(project_id, fields)
        return {"success": True, "project": updated.model_dump(by_alias=True)}

    @app.delete("/api/dashboard/projects/{project_id}")
    def delete_project(
        project_id: int,
        _: str = Depends(get_current_admin),
        store: CatalogStore = Depends(get_store),
    ):
        store.delete_project(project_id)
        return {"success": True}

    @app.put("/api/dashboard/skills")
    def replace_skills(
        body: SkillsUpdate,
        _: str = Depends(get_current_admin),
        store: CatalogStore = Depends(get_store),
    ):
        skills = store.replace_skills(body.skills)
        return {"success": True, "skills": [s.model_dump(mode="json") for s in skills]}

    @app.put("/api/dashboard/learning")
    def replace_learning(
        body: LearningUpdate,
        _: str = Depends(get_current_admin),
        store: CatalogStore = Depends(get_store),
    ):
        items = store.replace_learning(body.currently_learning)
        return {"success": True, "currentlyLearning": items}

    @app.post("/api/dashboard/refresh-github")
    def refresh_github(_: str = Depends(get_current_admin), importer: GitHubImporter = Depends(get_importer)):
        projects = importer.refresh()
        return {
            "success": True,
            "message": "GitHub data refreshed",
            "projects": [p.model_dump(by_alias=True) for p in projects],
        }


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
