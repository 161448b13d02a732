"""Explicitly constructed service handles.

``build_services`` runs once at process start and wires the document
store, repositories, HTTP client, inference clients and rate limiter
from Settings.  The resulting ``Services`` is stored on ``app.state``
and reaches route handlers through ``gradeflow.api.dependencies``; the
application lifespan calls ``aclose`` on shutdown.

Tests build their own ``Services`` with an in-memory store and an
``httpx.MockTransport`` client instead of patching module globals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from gradeflow.core.config import Settings
from gradeflow.db.engine import Database, build_database
from gradeflow.db.redis import build_redis
from gradeflow.repos.assignment_repo import AssignmentRepo
from gradeflow.repos.audit_repo import AuditRepo
from gradeflow.repos.documents import (
    DocumentStore,
    InMemoryDocumentStore,
    PgDocumentStore,
)
from gradeflow.repos.rubric_repo import RubricRepo
from gradeflow.repos.score_repo import ScoreRepo
from gradeflow.repos.submission_repo import DraftRepo, SubmissionRepo
from gradeflow.services.heuristics import DEFAULT_POLICY, HeuristicPolicy
from gradeflow.services.inference import HuggingFaceInference, OllamaClient
from gradeflow.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimiter,
    RedisRateLimiter,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Services:
    settings: Settings
    store: DocumentStore
    http: httpx.AsyncClient
    huggingface: HuggingFaceInference | None
    ollama: OllamaClient
    rate_limiter: RateLimiter
    ai_rate_limit: RateLimitConfig
    policy: HeuristicPolicy = DEFAULT_POLICY
    database: Database | None = None
    redis: Any = None
    assignments: AssignmentRepo = field(init=False)
    rubrics: RubricRepo = field(init=False)
    submissions: SubmissionRepo = field(init=False)
    drafts: DraftRepo = field(init=False)
    scores: ScoreRepo = field(init=False)
    audit: AuditRepo = field(init=False)

    def __post_init__(self) -> None:
        self.assignments = AssignmentRepo(self.store)
        self.rubrics = RubricRepo(self.store)
        self.submissions = SubmissionRepo(self.store)
        self.drafts = DraftRepo(self.store)
        self.scores = ScoreRepo(self.store)
        self.audit = AuditRepo(self.store)

    async def aclose(self) -> None:
        await self.http.aclose()
        if self.redis is not None:
            await self.redis.aclose()
            logger.info("Redis connection pool closed")
        if self.database is not None:
            await self.database.dispose()


def build_services(
    settings: Settings,
    *,
    store: DocumentStore | None = None,
    http_client: httpx.AsyncClient | None = None,
    policy: HeuristicPolicy = DEFAULT_POLICY,
) -> Services:
    database = None
    if store is None:
        if settings.database_url:
            database = build_database(settings.database_url, echo=settings.is_dev)
            store = PgDocumentStore(database.sessions)
        else:
            logger.info("No DATABASE_URL configured, using in-memory document store")
            store = InMemoryDocumentStore()

    http = http_client or httpx.AsyncClient(
        timeout=httpx.Timeout(settings.inference_timeout_seconds)
    )

    huggingface = None
    if settings.huggingface_api_token:
        huggingface = HuggingFaceInference(
            http,
            base_url=settings.huggingface_base_url,
            token=settings.huggingface_api_token,
            embedding_model=settings.embedding_model,
            detector_model=settings.ai_detector_model,
            content_model=settings.content_model,
        )
    else:
        logger.info("HUGGINGFACE_API_TOKEN not set, AI checks will use heuristics")

    redis = None
    rate_limiter: RateLimiter
    if settings.redis_url:
        redis = build_redis(settings.redis_url)
        rate_limiter = RedisRateLimiter(redis)
    else:
        rate_limiter = InMemoryRateLimiter()

    return Services(
        settings=settings,
        store=store,
        http=http,
        huggingface=huggingface,
        ollama=OllamaClient(
            http, base_url=settings.ollama_base_url, model=settings.ollama_model
        ),
        rate_limiter=rate_limiter,
        ai_rate_limit=RateLimitConfig(capacity=settings.ai_eval_rate_capacity),
        policy=policy,
        database=database,
        redis=redis,
    )
