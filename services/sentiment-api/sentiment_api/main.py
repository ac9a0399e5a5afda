import hmac
import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .nodes.lexicon import (
    DEFAULT_LEXICON_PATH,
    DEFAULT_STOPWORDS_PATH,
    load_lexicon,
    load_stopwords,
)
from .nodes.tokenizer import tokenize
from .pipeline import MAX_KEYWORDS, analyze_batch, analyze_single
from .quota import (
    InMemoryQuotaStore,
    QuotaExceeded,
    QuotaError,
    QuotaGate,
    RedisQuotaStore,
    StoreTimeout,
    StoreUnavailable,
    Unauthorized,
    mask_key,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)

APP_NAME = "Lexicon Sentiment API"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = (
    "Context-free sentiment analysis of comments against a static lexicon, "
    "with keyword extraction and an SVG word cloud."
)

REDIS_URL = os.getenv("REDIS_URL", "")
DAILY_FREE_TOKENS = int(os.getenv("DAILY_FREE_TOKENS", "10000"))
QUOTA_STORE_TIMEOUT = float(os.getenv("QUOTA_STORE_TIMEOUT", "5.0"))
LEXICON_PATH = os.getenv("LEXICON_PATH", str(DEFAULT_LEXICON_PATH))
STOPWORDS_PATH = os.getenv("STOPWORDS_PATH", str(DEFAULT_STOPWORDS_PATH))
KEYWORD_LIMIT = min(int(os.getenv("KEYWORD_LIMIT", "20")), MAX_KEYWORDS)
FREE_TOKEN_PASSWORD = os.getenv("FREE_TOKEN_PASSWORD", "")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
SUPPORTED_LANGUAGES = [
    lang.strip() for lang in os.getenv("SUPPORTED_LANGUAGES", "English").split(",") if lang.strip()
]

ENDPOINTS = {
    "/cf/single": "POST - Context free analysis of a single comment",
    "/cf/batch": "POST - Context free analysis of multiple comments",
    "/health": "GET - Health check",
    "/docs": "GET - Documentation",
    "/langs": "GET - Supported languages",
    "/tokenize": "POST - Tokenizes your given text",
    "/tokenCount": "POST - Get your token count",
}

# Request formats echoed back when a body fails validation.
REQUEST_FORMATS = {
    "/cf/single": {"api-key": "string - Your API key", "comment": "text to analyze"},
    "/cf/batch": {"api-key": "string - Your API key", "comment-list": ["comment1", "comment2", "..."]},
    "/tokenize": {"api-key": "string - Your API key", "comment": "text to tokenize"},
    "/tokenCount": {"api-key": "string - Your API key"},
    "/grantFreeTokens": {"api-key": "string - Your API key", "password": "string"},
}

app = FastAPI(title=APP_NAME, version=APP_VERSION, description=APP_DESCRIPTION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ApiKeyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(alias="api-key")


class CommentRequest(ApiKeyRequest):
    comment: str


class BatchRequest(ApiKeyRequest):
    comment_list: list[str] = Field(alias="comment-list")


class GrantRequest(ApiKeyRequest):
    password: str = ""


class AnalysisResponse(BaseModel):
    positive_score: int
    negative_score: int
    polarity_score: float
    sentiment: str
    positive_words: list[str]
    negative_words: list[str]
    unidentified_words: list[str]
    keywords: dict[str, int]
    word_cloud: str


@app.on_event("startup")
async def startup():
    # Dataset load failures propagate and abort startup.
    app.state.lexicon = await load_lexicon(LEXICON_PATH)
    app.state.stopwords = await load_stopwords(STOPWORDS_PATH)

    if REDIS_URL:
        store = RedisQuotaStore.from_url(REDIS_URL, QUOTA_STORE_TIMEOUT)
        log.info("Quota store: redis")
    else:
        store = InMemoryQuotaStore()
        log.warning("REDIS_URL is empty -- using in-process quota store (single node only)")
    app.state.quota_gate = QuotaGate(store, DAILY_FREE_TOKENS, QUOTA_STORE_TIMEOUT)
    log.info("daily_free_tokens=%d keyword_limit=%d", DAILY_FREE_TOKENS, KEYWORD_LIMIT)


@app.on_event("shutdown")
async def shutdown():
    gate = getattr(app.state, "quota_gate", None)
    if gate:
        await gate.store.close()


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    log.error("400 validation error on %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={
        "status": 400,
        "message": "Invalid JSON format. Refer to documentation.",
        "error": str(exc.errors()),
        "details": REQUEST_FORMATS.get(request.url.path, {}),
    })


@app.exception_handler(QuotaError)
async def quota_error_handler(request: Request, exc: QuotaError):
    if isinstance(exc, Unauthorized):
        status = 401
    elif isinstance(exc, QuotaExceeded):
        status = 429
    elif isinstance(exc, StoreTimeout):
        status = 504
    elif isinstance(exc, StoreUnavailable):
        status = 503
    else:
        status = 500
    if isinstance(exc, StoreUnavailable):
        log.error("Quota store failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=status, content={"error": str(exc)})


@app.exception_handler(404)
async def not_found_handler(request: Request, exc: Exception):
    return JSONResponse(
        status_code=404,
        content={"error": "Invalid Endpoint! Refer to documentation on '/docs' endpoint"},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


@app.get("/")
async def welcome():
    return {
        "message": f"Welcome to {APP_NAME}",
        "description": APP_DESCRIPTION,
        "version": APP_VERSION,
        "endpoints": ENDPOINTS,
        "supported_languages": SUPPORTED_LANGUAGES,
    }


@app.get("/health")
async def health():
    return {"status": "healthy"}


@app.get("/langs")
async def langs():
    return SUPPORTED_LANGUAGES


@app.post("/tokenize")
async def tokenize_text(body: CommentRequest):
    if not body.api_key:
        raise Unauthorized("Missing API Key")
    return [{"value": t.value, "tag": t.tag} for t in tokenize(body.comment)]


@app.post("/tokenCount")
async def token_count(body: ApiKeyRequest, request: Request):
    count = await request.app.state.quota_gate.token_count(body.api_key)
    return {"token_count": count}


@app.post("/grantFreeTokens")
async def grant_free_tokens(body: GrantRequest, request: Request):
    if not body.api_key:
        raise Unauthorized("Missing API Key")
    if not FREE_TOKEN_PASSWORD or not hmac.compare_digest(
        body.password.encode(), FREE_TOKEN_PASSWORD.encode()
    ):
        log.warning("Rejected free token grant for %s", mask_key(body.api_key))
        return JSONResponse(status_code=403, content={"error": "Invalid Password!"})

    await request.app.state.quota_gate.grant_free_tokens(body.api_key)
    return {"message": "Success"}


@app.post("/cf/single", response_model=AnalysisResponse)
async def single_analysis(body: CommentRequest, request: Request):
    state = request.app.state
    log.info("POST /cf/single — key=%s comment_length=%d", mask_key(body.api_key), len(body.comment))

    await state.quota_gate.try_deduct(body.api_key, len(body.comment))

    result = analyze_single(body.comment, state.lexicon, state.stopwords, KEYWORD_LIMIT)
    return result.to_dict()


@app.post("/cf/batch", response_model=AnalysisResponse)
async def batch_analysis(body: BatchRequest, request: Request):
    state = request.app.state
    total_length = sum(len(c) for c in body.comment_list)
    log.info("POST /cf/batch — key=%s comments=%d total_length=%d",
             mask_key(body.api_key), len(body.comment_list), total_length)

    await state.quota_gate.try_deduct(body.api_key, total_length)

    result = analyze_batch(body.comment_list, state.lexicon, state.stopwords, KEYWORD_LIMIT)
    return result.to_dict()
