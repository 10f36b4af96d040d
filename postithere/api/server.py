from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ValidationError
from pymongo import MongoClient
from pymongo.errors import PyMongoError
from starlette.concurrency import run_in_threadpool

from postithere import __version__
from postithere.auth import PasswordHasher, TokenService, UserDirectory, get_current_user, require_registration_open
from postithere.auth.deps import get_form_store, get_tokens, get_users
from postithere.config import Config, load_config
from postithere.db import create_client, get_database, init_db
from postithere.exceptions import (
    AuthenticationError,
    DuplicateEmailError,
    FormAlreadyExistsError,
    FormNotFoundError,
    InvalidParameterError,
    MissingFieldError,
    RegistrationClosedError,
    StorageError,
    UnsupportedBodyError,
    UserNotFoundError,
)
from postithere.flags import ConfigStore, RegistrationGate
from postithere.forms import FormStore, normalize_parameters
from postithere.models import EmailPasswordCredential, Form, User


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


router = APIRouter()

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


# -----------------------------
# Request body helpers
# -----------------------------


def _validation_message(errors: Sequence[Dict[str, Any]]) -> str:
    """Render the first validation problem as a single human-readable line."""
    for err in errors:
        loc = [str(p) for p in (err.get("loc") or ()) if p != "body"]
        if err.get("type") == "missing":
            if loc:
                return str(MissingFieldError(loc[-1]))
            return "Request body is required"

    if not errors:
        return "Invalid request body"
    err = errors[0]
    loc = [str(p) for p in (err.get("loc") or ()) if p != "body"]
    if not loc:
        return f"Invalid request body: {err.get('msg', 'invalid value')}"
    return f"Field '{loc[-1]}' is invalid: {err.get('msg', 'invalid value')}"


async def _read_body(request: Request) -> Dict[str, Any]:
    """Read a JSON or form-url-encoded body into a plain dict."""
    content_type = (request.headers.get("content-type") or "").split(";")[0].strip().lower()
    if content_type == "application/json" or content_type.endswith("+json"):
        try:
            data = await request.json()
        except ValueError:
            raise RequestValidationError(
                [{"type": "json_invalid", "loc": ("body",), "msg": "JSON decode error", "input": {}}]
            )
        if not isinstance(data, dict):
            raise RequestValidationError(
                [{"type": "model_type", "loc": ("body",), "msg": "Expected a JSON object", "input": data}]
            )
        return data

    form = await request.form()
    return {k: v for k, v in form.items() if isinstance(v, str)}


def _parse_model(model: type[BaseModel], data: Dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise RequestValidationError(e.errors())


# -----------------------------
# Health
# -----------------------------


@router.get("/health")
def health() -> Dict[str, Any]:
    return {"status": "ok"}


# -----------------------------
# Users
# -----------------------------


@router.post("/users/login", response_class=PlainTextResponse)
async def users_login(
    request: Request,
    users: UserDirectory = Depends(get_users),
    tokens: TokenService = Depends(get_tokens),
) -> PlainTextResponse:
    """Exchange email/password (JSON or form-url-encoded) for a bearer token.

    An unknown email and a wrong password produce the same empty 401.
    """
    credential: EmailPasswordCredential = _parse_model(EmailPasswordCredential, await _read_body(request))
    user = await run_in_threadpool(users.verify_credentials, credential.email, credential.password)
    if user is None:
        raise AuthenticationError("invalid_credentials", challenge=False)
    return PlainTextResponse(tokens.issue(user.id))


@router.post(
    "/users/register",
    status_code=201,
    response_class=Response,
    dependencies=[Depends(require_registration_open)],
)
def users_register(
    payload: EmailPasswordCredential,
    users: UserDirectory = Depends(get_users),
) -> Response:
    # Blank values are treated like absent ones.
    if not payload.email.strip():
        raise MissingFieldError("email")
    if not payload.password:
        raise MissingFieldError("password")

    users.register(payload.email, payload.password)
    return Response(status_code=201)


@router.get("/users/me")
def users_me(user: User = Depends(get_current_user)) -> Dict[str, Any]:
    return {"user": user.public()}


@router.post("/users/{user_id}/forms", status_code=201, response_class=Response)
def users_add_form(
    user_id: str,
    payload: Form,
    user: User = Depends(get_current_user),
    users: UserDirectory = Depends(get_users),
) -> Response:
    # Users can only attach forms to themselves.
    if user.id != user_id:
        raise AuthenticationError("user_mismatch")

    users.add_form_to_user(user.id, payload)
    return Response(status_code=201)


# -----------------------------
# Forms
# -----------------------------


@router.get("/forms/{form_id}")
def forms_list_submissions(
    form_id: str,
    user: User = Depends(get_current_user),
    forms: FormStore = Depends(get_form_store),
) -> List[Dict[str, Any]]:
    # Someone else's form looks exactly like a missing one.
    if not user.owns_form(form_id):
        raise FormNotFoundError(form_id)
    return [s.to_json() for s in forms.list_submissions(form_id)]


@router.api_route("/forms/{form_id}/submit", methods=["GET", "POST"], status_code=201)
async def forms_submit(
    form_id: str,
    request: Request,
    forms: FormStore = Depends(get_form_store),
) -> JSONResponse:
    """Anonymous submission endpoint.

    GET takes the data from the query string, POST from a url-encoded or
    multipart body. Any other POST body is refused rather than stored empty.
    `formId` itself is never part of the stored parameters.
    """
    if request.method == "GET":
        items = request.query_params.multi_items()
    else:
        content_type = (request.headers.get("content-type") or "").split(";")[0].strip().lower()
        if content_type and content_type not in _FORM_CONTENT_TYPES:
            raise UnsupportedBodyError(content_type)
        body = await request.form()
        items = [(k, v) for k, v in body.multi_items() if isinstance(v, str)]

    parameters = normalize_parameters(items)
    submission = await run_in_threadpool(forms.submit, form_id, request.headers.get("origin"), parameters)
    return JSONResponse(submission.to_json(), status_code=201)


# -----------------------------
# App factory
# -----------------------------


def _install_cors(app: FastAPI, cfg: Config) -> None:
    origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if not origins:
        return
    if "*" in origins:
        # Echo any origin back so credentialed requests from a separate frontend work.
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=".*",
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            max_age=86400,
        )
        return
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=86400,
    )


def _install_error_handlers(app: FastAPI, cfg: Config) -> None:
    challenge = {"WWW-Authenticate": f'Bearer realm="{cfg.AUTH_JWT_REALM}"'}

    @app.exception_handler(RequestValidationError)
    async def _on_validation_error(request: Request, exc: RequestValidationError) -> Response:
        return PlainTextResponse(_validation_message(exc.errors()), status_code=400)

    @app.exception_handler(MissingFieldError)
    @app.exception_handler(InvalidParameterError)
    async def _on_bad_field(request: Request, exc: Exception) -> Response:
        return PlainTextResponse(str(exc), status_code=400)

    @app.exception_handler(AuthenticationError)
    async def _on_unauthorized(request: Request, exc: AuthenticationError) -> Response:
        # No body: the reason stays server-side.
        return Response(status_code=401, headers=challenge if exc.challenge else None)

    @app.exception_handler(RegistrationClosedError)
    async def _on_registration_closed(request: Request, exc: RegistrationClosedError) -> Response:
        return Response(status_code=503)

    @app.exception_handler(DuplicateEmailError)
    async def _on_duplicate_email(request: Request, exc: DuplicateEmailError) -> Response:
        return Response(status_code=304)

    @app.exception_handler(FormNotFoundError)
    @app.exception_handler(UserNotFoundError)
    async def _on_not_found(request: Request, exc: Exception) -> Response:
        return PlainTextResponse(str(exc), status_code=404)

    @app.exception_handler(UnsupportedBodyError)
    async def _on_unsupported_body(request: Request, exc: UnsupportedBodyError) -> Response:
        return PlainTextResponse(str(exc), status_code=415)

    @app.exception_handler(FormAlreadyExistsError)
    async def _on_form_exists(request: Request, exc: FormAlreadyExistsError) -> Response:
        return PlainTextResponse(str(exc), status_code=409)

    @app.exception_handler(StorageError)
    @app.exception_handler(PyMongoError)
    async def _on_storage_error(request: Request, exc: Exception) -> Response:
        _debug(f"Storage failure on {request.method} {request.url.path}: {exc.__class__.__name__}: {exc}")
        return Response(status_code=500)


def create_app(cfg: Optional[Config] = None, *, client: Optional[MongoClient] = None) -> FastAPI:
    """Build the API with all services wired in.

    `client` lets callers (tests, embedding apps) supply their own MongoClient;
    otherwise one is created from config and closed on shutdown.
    """
    cfg = cfg or load_config()

    # A missing JWT secret is a configuration error: fail here, not per request.
    tokens = TokenService(
        secret=cfg.AUTH_JWT_SECRET,
        issuer=cfg.AUTH_JWT_ISSUER,
        audience=cfg.AUTH_JWT_AUDIENCE,
        validity=timedelta(hours=max(1, int(cfg.AUTH_TOKEN_VALIDITY_HOURS))),
    )
    hasher = PasswordHasher(rounds=cfg.AUTH_HASH_ROUNDS)

    owns_client = client is None
    mongo = client if client is not None else create_client(cfg)
    db = get_database(mongo, cfg)

    users = UserDirectory(db, hasher)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(db)
        _debug(f"Started postithere {__version__} (db={cfg.MONGO_DB})")
        try:
            yield
        finally:
            if owns_client:
                mongo.close()

    app = FastAPI(title="PostItHere", version=__version__, lifespan=lifespan)

    app.state.cfg = cfg
    app.state.tokens = tokens
    app.state.hasher = hasher
    app.state.users = users
    app.state.forms = FormStore(db, users)
    app.state.registration_gate = RegistrationGate(ConfigStore(db), cfg.REGISTRATION_FLAG_KEY)

    _install_cors(app, cfg)
    _install_error_handlers(app, cfg)
    app.include_router(router)
    return app
