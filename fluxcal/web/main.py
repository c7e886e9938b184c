"""FastAPI application: health check, per-user JSON API, task endpoints, lifecycle.

Users are addressed by id in the path.  Every request runs in one
database session that commits on success and rolls back on error.

Task endpoints are meant for an external scheduler (cron, Cloud
Scheduler, ...) and are protected by the ``X-Tasks-Secret`` header.

Database migrations run automatically on startup via Alembic unless
``RUN_MIGRATIONS`` is disabled.
"""

from __future__ import annotations

import logging
import subprocess
import sys
import time
import uuid
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator

from fastapi import Depends, FastAPI, Header, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fluxcal.core.config import get_settings
from fluxcal.core.errors import (
    FluxcalError,
    InvalidInputError,
    NotFoundError,
    ProfileIncompleteError,
)
from fluxcal.core.logging import bind_request_id, setup_logging
from fluxcal.core.time import parse_date_key
from fluxcal.db.models import User
from fluxcal.db.repos import UserRepo
from fluxcal.db.session import dispose_engine, get_session, get_session_factory
from fluxcal.services import tracker
from fluxcal.services.metabolic import missing_profile_fields
from fluxcal.web.schemas import (
    BalanceOut,
    BufferOut,
    BurnOut,
    DayEndIn,
    DayStatsOut,
    DeletedOut,
    FastingDayOut,
    FoodDayOut,
    FoodIn,
    FoodOut,
    FoodUpdate,
    GoalIn,
    GoalOut,
    ProfileFields,
    ProfileOut,
    RestartIn,
    StageOut,
    TaskResult,
    UserCreate,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_migrations() -> None:
    """Run ``alembic upgrade head`` via subprocess.

    Uses subprocess because ``alembic/env.py`` calls ``asyncio.run()``
    internally; invoking it from the running event loop would raise
    ``RuntimeError``.
    """
    logger.info("Running database migrations", extra={"event": "migrations_start"})
    result = subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", "head"],
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        logger.error(
            "Migration failed: %s",
            result.stderr,
            extra={"event": "migrations_failed"},
        )
        raise RuntimeError(f"Alembic migration failed:\n{result.stderr}")
    logger.info("Database migrations complete", extra={"event": "migrations_done"})


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """Request-scoped session (overridden in tests)."""
    async with get_session() as session:
        yield session


def _check_tasks_secret(secret: str | None) -> bool:
    settings = get_settings()
    return bool(settings.TASKS_SECRET) and secret == settings.TASKS_SECRET


def _parse_day(value: str) -> date:
    try:
        return parse_date_key(value)
    except ValueError:
        raise InvalidInputError(f"Invalid date: {value!r} (expected YYYY-MM-DD)") from None


def _profile_out(user: User) -> ProfileOut:
    out = ProfileOut.model_validate(user)
    missing = missing_profile_fields(user)
    if missing:
        return out.model_copy(update={"missing_fields": missing})
    metabolic, _ = tracker.burn_rates(user)
    return out.model_copy(update={"bmr": metabolic.bmr, "tdee": metabolic.tdee})


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle manager.

    1. Configure logging.
    2. Run database migrations (``alembic upgrade head``) if enabled.
    3. Create the engine and session factory.
    """
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    if settings.RUN_MIGRATIONS:
        _run_migrations()

    get_session_factory()
    logger.info("FluxCal API started", extra={"event": "startup"})

    yield

    await dispose_engine()
    logger.info("Database engine disposed", extra={"event": "shutdown"})


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

app = FastAPI(title="FluxCal", lifespan=lifespan, redoc_url=None)


@app.exception_handler(FluxcalError)
async def _domain_error(request: Request, exc: FluxcalError) -> JSONResponse:
    if isinstance(exc, NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})
    if isinstance(exc, ProfileIncompleteError):
        return JSONResponse(
            status_code=409,
            content={"detail": "onboarding required", "missing": exc.missing},
        )
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.middleware("http")
async def _log_requests(request: Request, call_next):  # noqa: ANN001, ANN202
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    bind_request_id(request_id)
    started = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    logger.debug(
        "%s %s -> %d",
        request.method,
        request.url.path,
        response.status_code,
        extra={"event": "http_request", "latency_ms": round((time.perf_counter() - started) * 1000, 1)},
    )
    return response


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Users / profile / goals
# ---------------------------------------------------------------------------


@app.post("/users", status_code=201, response_model=ProfileOut)
async def create_user(
    body: UserCreate,
    session: AsyncSession = Depends(get_db_session),
) -> ProfileOut:
    fields = body.model_dump(exclude_unset=True)
    identity = {k: fields.pop(k) for k in ("email", "display_name") if k in fields}
    user = await tracker.create_user(session, **identity)
    if fields:
        user = await tracker.update_profile(session, user.id, fields)
    return _profile_out(user)


@app.get("/users/{user_id}/profile", response_model=ProfileOut)
async def get_profile(
    user_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> ProfileOut:
    return _profile_out(await tracker.get_user(session, user_id))


@app.patch("/users/{user_id}/profile", response_model=ProfileOut)
async def patch_profile(
    user_id: uuid.UUID,
    body: ProfileFields,
    session: AsyncSession = Depends(get_db_session),
) -> ProfileOut:
    user = await tracker.update_profile(session, user_id, body.model_dump(exclude_unset=True))
    return _profile_out(user)


@app.patch("/users/{user_id}/goals", response_model=GoalOut)
async def patch_goals(
    user_id: uuid.UUID,
    body: GoalIn,
    session: AsyncSession = Depends(get_db_session),
) -> GoalOut:
    user, plan = await tracker.set_goal(session, user_id, body.target_weight, body.target_days)
    return GoalOut(
        goal_weight=plan.goal_weight,
        goal_days=plan.goal_days,
        daily_goal_calories=plan.daily_goal_calories,
        daily_deficit=plan.daily_deficit,
        goal_start_date=user.goal_start_date,
    )


@app.post("/users/{user_id}/reset", response_model=ProfileOut)
async def reset_user(
    user_id: uuid.UUID,
    body: RestartIn | None = None,
    session: AsyncSession = Depends(get_db_session),
) -> ProfileOut:
    tracking_start = body.tracking_start if body else None
    return _profile_out(await tracker.restart(session, user_id, tracking_start))


# ---------------------------------------------------------------------------
# Balance / buffer
# ---------------------------------------------------------------------------


def _balance_out(reading: tracker.BalanceReading) -> BalanceOut:
    return BalanceOut(
        balance=reading.balance,
        cap=reading.cap,
        buffer=reading.buffer,
        at_cap=reading.at_cap,
        bmr=reading.metabolic.bmr,
        tdee=reading.metabolic.tdee,
        metabolic_rate=reading.rates.metabolic,
        budget_rate=reading.rates.budget,
        anchor_value=reading.anchor.value,
        anchor_timestamp=reading.anchor.timestamp,
        seconds_to_zero=reading.seconds_to_zero,
        burned_today=reading.daily_burn.burned,
        day_progress_percent=reading.daily_burn.progress_percent,
    )


@app.get("/users/{user_id}/balance", response_model=BalanceOut)
async def get_balance(
    user_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> BalanceOut:
    return _balance_out(await tracker.query_balance(session, user_id))


@app.post("/users/{user_id}/balance/init", response_model=BalanceOut)
async def init_balance(
    user_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> BalanceOut:
    await tracker.reinitialize_balance(session, user_id)
    return _balance_out(await tracker.query_balance(session, user_id))


@app.post("/users/{user_id}/buffer/day-end", response_model=BufferOut)
async def buffer_day_end(
    user_id: uuid.UUID,
    body: DayEndIn | None = None,
    session: AsyncSession = Depends(get_db_session),
) -> BufferOut:
    decision = await tracker.run_day_end(session, user_id, body.day if body else None)
    return BufferOut(
        set=decision.set,
        amount=decision.amount,
        for_date=decision.for_date,
        reason=decision.reason,
        cleared=decision.cleared,
    )


# ---------------------------------------------------------------------------
# Food
# ---------------------------------------------------------------------------


@app.post("/users/{user_id}/food", status_code=201, response_model=FoodOut)
async def add_food(
    user_id: uuid.UUID,
    body: FoodIn,
    session: AsyncSession = Depends(get_db_session),
) -> FoodOut:
    food = await tracker.log_food(session, user_id, **body.model_dump())
    return FoodOut.model_validate(food)


@app.get("/users/{user_id}/food/date/{day}", response_model=FoodDayOut)
async def food_for_date(
    user_id: uuid.UUID,
    day: str,
    session: AsyncSession = Depends(get_db_session),
) -> FoodDayOut:
    result = await tracker.food_day(session, user_id, _parse_day(day))
    stats = result.stats
    return FoodDayOut(
        date=stats["date"],
        entries=[FoodOut.model_validate(f) for f in result.entries],
        calories=stats["calories"],
        protein=stats["protein"],
        carbs=stats["carbs"],
        fat=stats["fat"],
        burn_queue=[
            BurnOut(
                food_id=item.food_id,
                status=item.status.value,
                burn_start=item.burn_start,
                burn_end=item.burn_end,
                fill_percent=item.fill_percent,
                remaining_seconds=item.remaining_seconds,
            )
            for item in result.burn_queue.values()
        ],
    )


@app.get("/users/{user_id}/food/last", response_model=FoodOut | None)
async def last_food(
    user_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> FoodOut | None:
    food = await tracker.most_recent_food(session, user_id)
    return FoodOut.model_validate(food) if food else None


@app.put("/users/{user_id}/food/{food_id}", response_model=FoodOut)
async def update_food(
    user_id: uuid.UUID,
    food_id: int,
    body: FoodUpdate,
    session: AsyncSession = Depends(get_db_session),
) -> FoodOut:
    food = await tracker.edit_food(session, user_id, food_id, **body.model_dump(exclude_unset=True))
    return FoodOut.model_validate(food)


@app.delete("/users/{user_id}/food/{food_id}", status_code=204)
async def remove_food(
    user_id: uuid.UUID,
    food_id: int,
    session: AsyncSession = Depends(get_db_session),
) -> Response:
    await tracker.delete_food(session, user_id, food_id)
    return Response(status_code=204)


@app.delete("/users/{user_id}/food", response_model=DeletedOut)
async def remove_all_food(
    user_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> DeletedOut:
    return DeletedOut(deleted_count=await tracker.delete_all_food(session, user_id))


@app.get("/users/{user_id}/stats", response_model=list[DayStatsOut])
async def stats(
    user_id: uuid.UUID,
    days: int = 7,
    session: AsyncSession = Depends(get_db_session),
) -> list[DayStatsOut]:
    rows = await tracker.recent_stats(session, user_id, days)
    return [DayStatsOut(**row) for row in rows]


# ---------------------------------------------------------------------------
# Fasting
# ---------------------------------------------------------------------------


@app.get("/users/{user_id}/fasting/stage", response_model=StageOut)
async def fasting_stage(
    user_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> StageOut:
    reading = await tracker.current_stage(session, user_id)
    return StageOut(
        stage=reading.stage.value,
        label=reading.label,
        hours_since_last_meal=reading.hours_since_last_meal,
        progress_percent=reading.progress_percent,
    )


@app.get("/users/{user_id}/fasting/summary", response_model=list[FastingDayOut])
async def fasting_summary(
    user_id: uuid.UUID,
    days_back: int | None = None,
    session: AsyncSession = Depends(get_db_session),
) -> list[FastingDayOut]:
    rows = await tracker.fasting_summaries(session, user_id, days_back)
    return [FastingDayOut.model_validate(r) for r in rows]


@app.post("/users/{user_id}/fasting/recalculate", response_model=list[FastingDayOut])
async def fasting_recalculate(
    user_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> list[FastingDayOut]:
    rows = await tracker.recalculate_fasting(session, user_id)
    return [FastingDayOut.model_validate(r) for r in rows]


# ---------------------------------------------------------------------------
# Task endpoints (protected by TASKS_SECRET)
# ---------------------------------------------------------------------------


@app.post("/tasks/recalculate", response_model=TaskResult)
async def task_recalculate(
    x_tasks_secret: str | None = Header(None),
    session: AsyncSession = Depends(get_db_session),
) -> TaskResult:
    """Recompute fasting summaries for every user with food or a tracking start.

    Protected by ``TASKS_SECRET``. Returns 403 if the header is wrong or empty.
    """
    if not _check_tasks_secret(x_tasks_secret):
        return Response(status_code=403)  # type: ignore[return-value]

    started = time.perf_counter()
    users = await UserRepo.list_tracking(session)
    failed = 0
    for user_id in [u.id for u in users]:
        try:
            async with session.begin_nested():
                await tracker.recalculate_fasting(session, user_id)
        except (FluxcalError, SQLAlchemyError):
            failed += 1
            logger.exception(
                "Fasting recalculation failed",
                extra={"event": "task_recalculate_failed", "user_id": str(user_id)},
            )

    logger.info(
        "Recalculate task completed: %d users",
        len(users),
        extra={
            "event": "task_recalculate_done",
            "count": len(users),
            "latency_ms": round((time.perf_counter() - started) * 1000, 1),
        },
    )
    return TaskResult(processed=len(users) - failed, failed=failed)


@app.post("/tasks/day-end", response_model=TaskResult)
async def task_day_end(
    x_tasks_secret: str | None = Header(None),
    session: AsyncSession = Depends(get_db_session),
) -> TaskResult:
    """Run the day-end buffer calculation for every onboarded user.

    Each user's "yesterday" is taken in their own time zone, so the task
    is safe to call hourly.
    """
    if not _check_tasks_secret(x_tasks_secret):
        return Response(status_code=403)  # type: ignore[return-value]

    users = await UserRepo.list_profiled(session)
    failed = 0
    for user_id in [u.id for u in users]:
        try:
            async with session.begin_nested():
                await tracker.run_day_end(session, user_id)
        except (FluxcalError, SQLAlchemyError):
            failed += 1
            logger.exception(
                "Day-end buffer failed",
                extra={"event": "task_day_end_failed", "user_id": str(user_id)},
            )

    logger.info(
        "Day-end task completed: %d users",
        len(users),
        extra={"event": "task_day_end_done", "count": len(users)},
    )
    return TaskResult(processed=len(users) - failed, failed=failed)
