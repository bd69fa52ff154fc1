import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from signaling_relay import __version__
from signaling_relay.api.v1.router import api_router, ws_router
from signaling_relay.core.config import get_settings
from signaling_relay.core.telemetry import instrument_fastapi, setup_telemetry
from signaling_relay.services.signaling_service import create_signaling_context

settings = get_settings()

# 로깅 설정
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """애플리케이션 라이프사이클"""
    # 시작 시: Telemetry 초기화
    if settings.otel_enabled:
        setup_telemetry("signaling-relay", __version__, settings.otel_exporter_otlp_endpoint)

    logger.info(
        f"Signaling relay ready: port={settings.port}, origins={settings.cors_origins}, "
        f"ice_servers={len(app.state.signaling_ctx.ice_servers)}"
    )
    yield
    # 종료 시
    logger.info(f"Shutting down: {app.state.signaling_ctx.registry.get_stats()}")
    await app.state.connection_manager.close_all_connections()
    app.state.signaling_ctx.registry.clear()


app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="WebRTC signaling relay for browser peers",
    lifespan=lifespan,
)

# 시그널링 컨텍스트 (프로세스 단위 룸 레지스트리 + 연결 관리)
app.state.signaling_ctx, app.state.connection_manager = create_signaling_context(settings)

# OpenTelemetry FastAPI 계측
if settings.otel_enabled:
    instrument_fastapi(app)

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API 라우터 등록
app.include_router(api_router)
app.include_router(ws_router)


@app.get("/health")
async def health_check() -> dict:
    """헬스 체크"""
    return {"status": "ok"}
