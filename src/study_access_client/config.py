# Файл: src/study_access_client/config.py

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

# --- 1. Настройки PostgreSQL ---
class PostgresConfig(BaseModel):
    user: str = "postgres"
    password: str = "postgres"
    host: str = "localhost"
    port: int = 5432
    db: str = "workbench"

    pool_size: int = 5
    max_overflow: int = 5
    pool_timeout: int = 30
    pool_recycle: int = 1800
    pool_pre_ping: bool = True
    application_name: str = "study_access_client"

    def get_pg_dsn(self) -> str:
        """Собирает DSN для SQLAlchemy из полей этого объекта."""
        return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.db}"

# --- 2. Настройки AWS (IAM / S3 / KMS) ---
class AwsConfig(BaseModel):
    region: str = "us-east-1"
    endpoint_url: str | None = Field(None, description="Для localstack и подобных эмуляторов")
    partition: str = "aws"

    study_data_bucket_name: str = "study-data"
    study_data_kms_key_alias: str = "study-data-key"
    study_data_kms_key_arn: str | None = None
    study_data_kms_policy_workspace_sid: str = "Allow use by environment roles"

    @property
    def kms_key_alias(self) -> str:
        alias = self.study_data_kms_key_alias
        return alias if alias.startswith("alias/") else f"alias/{alias}"

# --- 3. Параметры распространения прав на рабочие окружения ---
class PropagationConfig(BaseModel):
    user_batch_size: int = Field(5, ge=1)
    environment_batch_size: int = Field(10, ge=1)
    # Жесткий лимит: операция синхронная и должна уложиться во время одного запроса
    max_environments: int = Field(100, ge=1)

    lock_expires_in: int = 25
    lock_attempts: int = 15
    lock_retry_delay: float = 1.0

# --- 4. Основной класс для явной передачи конфигурации ---
class AccessClientConfig(BaseModel):
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    aws: AwsConfig = Field(default_factory=AwsConfig)
    propagation: PropagationConfig = Field(default_factory=PropagationConfig)

# --- 5. Settings читает всё то же самое из .env ---
class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter='__',
        extra='ignore'
    )

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    aws: AwsConfig = Field(default_factory=AwsConfig)
    propagation: PropagationConfig = Field(default_factory=PropagationConfig)

    def to_client_config(self) -> AccessClientConfig:
        return AccessClientConfig(postgres=self.postgres, aws=self.aws, propagation=self.propagation)

# Ленивая инициализация: ошибки валидации не должны всплывать при импорте
_cached_settings: Optional[Settings] = None

def get_settings() -> Settings:
    """
    Возвращает синглтон-экземпляр настроек, создавая его при первом вызове.
    """
    global _cached_settings
    if _cached_settings is None:
        _cached_settings = Settings()
    return _cached_settings
