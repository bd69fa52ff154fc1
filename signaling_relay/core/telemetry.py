"""OpenTelemetry 계측 설정

시그널링 릴레이의 메트릭 초기화 로직과 커스텀 카운터를 제공합니다.
OTEL_ENABLED가 꺼져 있으면 noop meter를 사용하므로 카운터 호출은 항상 안전합니다.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from opentelemetry import metrics
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.semconv.resource import ResourceAttributes

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


def init_telemetry(
    service_name: str,
    service_version: str = "0.1.0",
    otlp_endpoint: str | None = None,
) -> metrics.Meter:
    """OpenTelemetry 초기화

    Args:
        service_name: 서비스 이름
        service_version: 서비스 버전
        otlp_endpoint: OTLP 수신 엔드포인트 (기본값: OTEL_EXPORTER_OTLP_ENDPOINT 환경변수)

    Returns:
        Meter 인스턴스
    """
    endpoint = otlp_endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")

    resource = Resource.create(
        {
            ResourceAttributes.SERVICE_NAME: service_name,
            ResourceAttributes.SERVICE_VERSION: service_version,
        }
    )

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=endpoint, insecure=True),
        export_interval_millis=10000,  # 10초마다 export
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)

    meter = metrics.get_meter(service_name, service_version)

    logger.info(
        "Telemetry initialized: service=%s, endpoint=%s",
        service_name,
        endpoint,
    )

    return meter


def instrument_fastapi(app: FastAPI) -> None:
    """FastAPI 자동 계측"""
    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        FastAPIInstrumentor.instrument_app(app)
        logger.info("FastAPI instrumentation enabled")
    except Exception as e:
        logger.warning("Failed to instrument FastAPI: %s", e)


class RelayMetrics:
    """시그널링 릴레이 커스텀 메트릭"""

    def __init__(self, meter: metrics.Meter):
        self.meter = meter
        self.connections_total = meter.create_counter(
            name="relay_connections_total",
            description="WebSocket 연결 수",
        )
        self.disconnections_total = meter.create_counter(
            name="relay_disconnections_total",
            description="WebSocket 연결 해제 수",
        )
        self.room_joins_total = meter.create_counter(
            name="relay_room_joins_total",
            description="룸 입장 성공 수",
        )
        self.room_full_total = meter.create_counter(
            name="relay_room_full_total",
            description="정원 초과로 거절된 입장 수",
        )
        self.relayed_messages_total = meter.create_counter(
            name="relay_relayed_messages_total",
            description="피어 간 릴레이된 메시지 수 (type별)",
        )
        self.malformed_messages_total = meter.create_counter(
            name="relay_malformed_messages_total",
            description="형식이 잘못되어 버려진 메시지 수",
        )


# ===========================================
# 싱글톤 인스턴스 및 접근자
# ===========================================

_meter: metrics.Meter | None = None
_relay_metrics: RelayMetrics | None = None
_initialized: bool = False


def get_meter() -> metrics.Meter:
    """Meter 인스턴스 반환 (초기화 안 된 경우 noop meter 반환)"""
    if _meter is None:
        return metrics.get_meter("signaling-relay-noop")
    return _meter


def get_relay_metrics() -> RelayMetrics:
    """릴레이 메트릭 반환 (초기화 전에는 noop meter 기반 인스턴스)"""
    global _relay_metrics
    if _relay_metrics is None:
        _relay_metrics = RelayMetrics(get_meter())
    return _relay_metrics


def setup_telemetry(service_name: str, service_version: str = "0.1.0", otlp_endpoint: str | None = None) -> None:
    """전역 telemetry 설정 (애플리케이션 시작 시 호출)"""
    global _meter, _relay_metrics, _initialized

    if _initialized:
        logger.warning("Telemetry already initialized, skipping")
        return

    _meter = init_telemetry(service_name, service_version, otlp_endpoint)
    _relay_metrics = RelayMetrics(_meter)
    _initialized = True
