# app/main.py
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.errors import register_exception_handlers
from app.api.routes import router as api_router
from app.config import Settings, get_settings
from app.db import create_db_engine, create_session_factory
from app.decision import ClinicalDecisionEngine
from app.intake import (
    BaselineModule,
    EmergencyScreener,
    IntakeOrchestrator,
    ZoneResolver,
    default_registry,
)
from app.llm import LLMClient, build_llm_client
from app.logging_config import get_logger, setup_logging
from app.services import (
    ErrorRecoveryService,
    IntakeLockService,
    IntakeSessionService,
    KeyValueStore,
    PatientAccountRepository,
    SqlClinicianSink,
    SqlKeyValueStore,
    init_db,
)

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    llm_client: Optional[LLMClient] = None,
) -> FastAPI:
    """
    Build the API with every service constructed here and attached to
    ``app.state``. Pass ``store`` to share lock and session records with
    another process, or ``llm_client`` to override the OpenAI client.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, structured=settings.log_structured)

    engine = create_db_engine(settings.database_url)
    session_factory = create_session_factory(engine)
    store = store or SqlKeyValueStore(session_factory)

    if llm_client is None:
        llm_client = build_llm_client(settings)

    decision_engine = ClinicalDecisionEngine(emergency_number=settings.emergency_service_number)
    orchestrator = IntakeOrchestrator(
        screener=EmergencyScreener(
            emergency_number=settings.emergency_service_number,
            helpline=settings.mental_health_helpline,
        ),
        resolver=ZoneResolver(),
        registry=default_registry(),
        engine=decision_engine,
        baseline=BaselineModule(),
        session_ttl=timedelta(hours=settings.session_ttl_hours),
    )
    locks = IntakeLockService(store, settings)
    recovery = ErrorRecoveryService(store, settings)

    app = FastAPI(title="Triage Intake API", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # for dev; tighten in prod
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )

    app.state.settings = settings
    app.state.db_engine = engine
    app.state.decision_engine = decision_engine
    app.state.lock_service = locks
    app.state.intake_service = IntakeSessionService(
        orchestrator=orchestrator,
        store=store,
        locks=locks,
        recovery=recovery,
        sink=SqlClinicianSink(session_factory),
        settings=settings,
        accounts=PatientAccountRepository(session_factory),
        llm_client=llm_client,
    )

    @app.on_event("startup")
    def on_startup() -> None:
        init_db(engine)
        logger.info("Triage intake API started (database=%s)", engine.url.render_as_string())

    @app.get("/")
    def root():
        return {"message": "Triage intake API is running"}

    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")
    return app
