"""FastAPI service: bet ingestion, period transitions and monitoring."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from outcomeguard.api.schemas import (
    ErrorResponse,
    ExposureResponse,
    HealthResponse,
    PlaceBetRequest,
    TransitionResponse,
)
from outcomeguard.config import configure_logging, get_settings
from outcomeguard.errors import (
    BetValidationError,
    OutcomeGuardError,
    PeriodStateError,
    StateUnavailable,
)
from outcomeguard.exposure import CandidateSetStats
from outcomeguard.models import BetReceipt, GameKind, PeriodKey, Result
from outcomeguard.period import PeriodManager, PeriodStatus

log = structlog.get_logger(__name__)

# Set by run_api() so lifespan loads the right profile and config directory.
_config_profile: str | None = None
_config_dir: Path | None = None

_STATUS_BY_ERROR: list[tuple[type[OutcomeGuardError], int]] = [
    (BetValidationError, 422),
    (PeriodStateError, 409),
    (StateUnavailable, 503),
]

_ERRORS = {
    404: {"description": "No result yet", "model": ErrorResponse},
    409: {"description": "Period not in the required state", "model": ErrorResponse},
    422: {"description": "Invalid bet or period key", "model": ErrorResponse},
    503: {"description": "Shared state unavailable", "model": ErrorResponse},
}


def _error_json(code: str, message: str, status_code: int = 404) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "code": code},
    )


async def _run_scheduler(manager: PeriodManager, schedule, interval: float, stop: asyncio.Event) -> None:
    """Drive open/freeze/settle from the wall clock until stopped."""
    log.info("scheduler_started", entries=len(schedule), interval=interval)
    while not stop.is_set():
        now = datetime.now(timezone.utc)
        try:
            await asyncio.to_thread(manager.tick, now, schedule)
        except OutcomeGuardError as e:
            log.error("scheduler_tick_failed", error=str(e), code=e.code)
        except Exception as e:
            # Keep the loop alive; the next tick retries whatever was left undone
            log.exception("scheduler_tick_crashed", error=str(e))
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass
    log.info("scheduler_stopped")


def create_app(manager: PeriodManager | None = None) -> FastAPI:
    """Build the app. Without a manager one is wired from settings at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = None
        stop = asyncio.Event()
        if app.state.manager is None:
            settings = get_settings(_config_profile, _config_dir)
            configure_logging(settings)
            app.state.manager = PeriodManager.from_settings(settings)
            if settings.run_scheduler:
                scheduler = asyncio.create_task(
                    _run_scheduler(app.state.manager, settings.schedule, settings.tick_interval_sec, stop)
                )
        yield
        if scheduler is not None:
            stop.set()
            await scheduler

    app = FastAPI(title="OutcomeGuard API", version="0.1.0", lifespan=lifespan)
    app.state.manager = manager
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @app.exception_handler(OutcomeGuardError)
    async def _domain_error(request: Request, exc: OutcomeGuardError) -> JSONResponse:
        for cls, status_code in _STATUS_BY_ERROR:
            if isinstance(exc, cls):
                return _error_json(exc.code, str(exc), status_code)
        log.error("request_failed", path=request.url.path, error=str(exc), code=exc.code)
        return _error_json(exc.code, str(exc), 500)

    def _manager() -> PeriodManager:
        return app.state.manager

    @app.get("/health", response_model=HealthResponse)
    def health():
        mgr = _manager()
        games = [g.value for g in GameKind if g in mgr.spaces]
        if not mgr.store.ping():
            return _error_json("state_unavailable", "Shared store unreachable", 503)
        return HealthResponse(status="ok", store=True, games=games)

    base = "/periods/{game}/{duration}/{timeline}/{period_id}"

    @app.post(base + "/bets", response_model=BetReceipt, responses=_ERRORS)
    def place_bet(game: str, duration: int, timeline: str, period_id: str, bet: PlaceBetRequest) -> BetReceipt:
        """Record a bet whose stake is already debited. Rejected once the period is frozen."""
        return _manager().place_bet(
            game,
            duration,
            timeline,
            period_id,
            user_id=bet.user_id,
            bet_type=bet.bet_type,
            bet_value=bet.bet_value,
            stake=bet.stake,
            payout_multiplier=bet.payout_multiplier,
        )

    @app.post(base + "/open", response_model=TransitionResponse, responses=_ERRORS)
    def open_period(game: str, duration: int, timeline: str, period_id: str) -> TransitionResponse:
        period = PeriodKey.build(game, duration, timeline, period_id)
        state = _manager().open_period(period)
        return TransitionResponse(period=period.scope, state=state.value)

    @app.post(base + "/freeze", response_model=TransitionResponse, responses=_ERRORS)
    def freeze_period(game: str, duration: int, timeline: str, period_id: str) -> TransitionResponse:
        period = PeriodKey.build(game, duration, timeline, period_id)
        _manager().freeze(period)
        return TransitionResponse(period=period.scope, state="frozen")

    @app.post(base + "/settle", response_model=Result, responses=_ERRORS)
    def settle_period(game: str, duration: int, timeline: str, period_id: str) -> Result:
        return _manager().settle(PeriodKey.build(game, duration, timeline, period_id))

    @app.get(base + "/exposure", response_model=ExposureResponse, responses=_ERRORS)
    def exposure(game: str, duration: int, timeline: str, period_id: str) -> ExposureResponse:
        period = PeriodKey.build(game, duration, timeline, period_id)
        entries = _manager().exposure_snapshot(period)
        return ExposureResponse(period=period.scope, entries=entries, total_liability=sum(entries.values()))

    @app.get(base + "/candidates", response_model=CandidateSetStats, responses=_ERRORS)
    def candidates(game: str, duration: int, timeline: str, period_id: str) -> CandidateSetStats:
        """Zero-exposure candidate counts (5d only)."""
        return _manager().candidate_stats(PeriodKey.build(game, duration, timeline, period_id))

    @app.get(base + "/status", response_model=PeriodStatus, responses=_ERRORS)
    def status(game: str, duration: int, timeline: str, period_id: str) -> PeriodStatus:
        return _manager().status(PeriodKey.build(game, duration, timeline, period_id))

    @app.get(base + "/result", response_model=Result, responses=_ERRORS)
    def result(game: str, duration: int, timeline: str, period_id: str):
        period = PeriodKey.build(game, duration, timeline, period_id)
        found = _manager().get_result(period)
        if found is None:
            return _error_json("no_result", f"No result recorded for {period.scope}")
        return found

    return app


app = create_app()


def run_api(
    host: str = "127.0.0.1",
    port: int = 8000,
    profile: str | None = None,
    config_dir: Path | None = None,
) -> None:
    global _config_profile, _config_dir
    _config_profile = profile
    _config_dir = config_dir
    import uvicorn

    uvicorn.run("outcomeguard.api.main:app", host=host, port=port, reload=False)
