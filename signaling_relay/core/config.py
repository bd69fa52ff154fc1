from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """애플리케이션 설정"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # 앱 설정
    app_name: str = "Signaling Relay"
    debug: bool = False
    log_level: str = "INFO"

    # 서버
    host: str = "0.0.0.0"
    port: int = 5003

    # CORS (쉼표로 구분된 origin 목록)
    origin: str = "http://localhost:5175"

    # TURN 서버 (TURN_URL이 있을 때만 ICE 서버 목록에 추가)
    turn_url: str | None = None
    turn_user: str | None = None
    turn_pass: str | None = None

    # OpenTelemetry
    otel_enabled: bool = False
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"

    @property
    def cors_origins(self) -> list[str]:
        """ORIGIN 환경변수를 origin 리스트로 변환"""
        return [o.strip() for o in self.origin.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """설정 싱글톤 반환"""
    return Settings()
