"""
应用配置模块

使用 Pydantic Settings 管理所有环境变量和配置。
配置从项目根目录的 .env 文件读取，支持类型验证和默认值。

配置分组：
- 基础：API 前缀、JWT 密钥、运行环境、CORS
- 数据库：PostgreSQL 连接参数
- Redis：聊天消息广播（多进程部署）和定时任务锁
- 聊天：历史消息条数、消息长度上限、广播后端
- 外部服务：支付（订阅结账）、AI 作业助手、OSS 文件存储
"""
import secrets
import warnings
from typing import Annotated, Any, Literal

from pydantic import (
    AnyUrl,
    BeforeValidator,
    HttpUrl,
    PostgresDsn,
    computed_field,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self


def parse_cors(v: Any) -> list[str] | str:
    """
    解析 CORS 配置值

    支持逗号分隔的字符串或列表两种格式。

    Raises:
        ValueError: 当输入格式不正确时
    """
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    """
    应用配置类

    配置来源优先级：
    1. 环境变量（最高优先级）
    2. .env 文件
    3. 代码中的默认值（最低优先级）
    """
    model_config = SettingsConfigDict(
        # 使用项目根目录的 .env 文件（backend/ 目录的上一级）
        env_file="../.env",
        env_ignore_empty=True,
        extra="ignore",
    )
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = secrets.token_urlsafe(32)  # JWT 签名密钥（默认随机生成）
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    # 前端地址，用于拼接结账成功/取消后的回跳地址
    FRONTEND_BASE_URL: str = "http://localhost:5173"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        """CORS 允许的源（去除尾部斜杠）"""
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS]

    PROJECT_NAME: str = "JCHS Nexus"
    SENTRY_DSN: HttpUrl | None = None

    # Snowflake
    SNOWFLAKE_NODE_ID: int = 0

    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> PostgresDsn:
        return PostgresDsn.build(
            scheme="postgresql+psycopg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )

    # 首个管理员账号（initial_data 脚本创建）
    FIRST_ADMIN_USERNAME: str | None = None
    FIRST_ADMIN_PASSWORD: str | None = None

    # Redis 配置
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str | None = None

    # 聊天配置
    # memory: 单进程内广播（开发/测试）；redis: 通过 Redis pub/sub 跨进程广播
    CHAT_BROKER: Literal["memory", "redis"] = "memory"
    CHAT_HISTORY_LIMIT: int = 50  # 基线快照的消息条数
    CHAT_MESSAGE_MAX_LENGTH: int = 500  # 单条消息最大长度

    # 阿里云 OSS（对象存储）配置
    OSS_ENDPOINT: str | None = None
    OSS_BUCKET: str | None = None
    OSS_ACCESS_KEY_ID: str | None = None
    OSS_ACCESS_KEY_SECRET: str | None = None
    OSS_DIR_PREFIX: str = "uploads"  # 上传文件目录前缀
    OSS_OBJECT_ACL: str = "public-read"
    OSS_PUBLIC_BASE_URL: str | None = None

    # 支付服务（订阅结账）配置
    PAYMENT_MOCK: bool = True  # 本地开发时不调用真实支付服务
    PAYMENT_API_BASE_URL: str | None = None
    PAYMENT_API_KEY: str | None = None
    PAYMENT_PRICE_ID: str = "nexus_monthly"
    PAYMENT_WEBHOOK_SECRET: str | None = None
    PAYMENT_TIMEOUT_SECONDS: float = 15.0

    # AI 作业助手配置
    AI_HELPER_MOCK: bool = True
    AI_HELPER_BASE_URL: str | None = None
    AI_HELPER_API_KEY: str | None = None
    AI_HELPER_TIMEOUT_SECONDS: float = 60.0
    AI_HELPER_MAX_QUESTION_LENGTH: int = 4000

    def _check_default_secret(self, var_name: str, value: str | None) -> None:
        """
        检查敏感配置是否使用了默认值 "changethis"

        本地环境只发出警告，其他环境直接报错。
        """
        if value == "changethis":
            message = (
                f'The value of {var_name} is "changethis", '
                "for security, please change it, at least for deployments."
            )
            if self.ENVIRONMENT == "local":
                warnings.warn(message, stacklevel=1)
            else:
                raise ValueError(message)

    @model_validator(mode="after")
    def _enforce_non_default_secrets(self) -> Self:
        self._check_default_secret("SECRET_KEY", self.SECRET_KEY)
        self._check_default_secret("POSTGRES_PASSWORD", self.POSTGRES_PASSWORD)
        self._check_default_secret("FIRST_ADMIN_PASSWORD", self.FIRST_ADMIN_PASSWORD)

        return self


# 创建全局配置实例，整个应用共享
settings = Settings()  # type: ignore
