"""
Configuration for the pgtools MCP server
Database connection settings and registry limits
Environment-aware configuration based on APP_ENV
"""

import os
from dataclasses import dataclass
from typing import Optional, Literal, Tuple
from urllib.parse import quote_plus
from pathlib import Path
from dotenv import load_dotenv

# Environment modes
EnvironmentMode = Literal["development", "test", "production"]


def load_app_environment(mode: Optional[str] = None) -> str:
    """
    Load environment variables from the appropriate .env file.

    Priority:
    1. Explicit 'mode' argument
    2. APP_ENV environment variable
    3. Default to 'development'

    Loads .env.{mode} if it exists, falling back to .env
    """
    if not mode:
        mode = os.getenv('APP_ENV', 'development')

    base_path = Path(__file__).parent
    env_file = base_path / f'.env.{mode}'

    # override=False lets variables set by the host process win over the file
    if env_file.exists():
        load_dotenv(env_file, override=False)
    elif (base_path / '.env').exists():
        load_dotenv(base_path / '.env', override=False)

    return mode


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass
class DatabaseConfig:
    """PostgreSQL database configuration"""

    host: str
    port: int
    database: str
    user: str
    password: str

    # Connection pool settings
    min_pool_size: int = 1
    max_pool_size: int = 10
    acquire_timeout: float = 10.0  # seconds
    command_timeout: int = 60  # seconds

    # SSL settings
    ssl_mode: str = "prefer"

    def __post_init__(self):
        if self.min_pool_size < 1:
            raise ValueError("min_pool_size must be at least 1")
        if self.max_pool_size < self.min_pool_size:
            raise ValueError(
                f"max_pool_size ({self.max_pool_size}) must be >= min_pool_size ({self.min_pool_size})"
            )
        if self.acquire_timeout <= 0:
            raise ValueError("acquire_timeout must be positive")

    @property
    def asyncpg_dsn(self) -> str:
        """Get asyncpg DSN format"""
        return (
            f"postgresql://{self.user}:{quote_plus(self.password)}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    @property
    def ssl_setting(self):
        """asyncpg expects True (require), False (disable) or 'prefer'"""
        if self.ssl_mode == 'require':
            return True
        if self.ssl_mode == 'disable':
            return False
        return 'prefer'

    @classmethod
    def from_environment(cls, mode: Optional[EnvironmentMode] = None) -> 'DatabaseConfig':
        """
        Load configuration from environment variables

        Environment variables:
        - APP_ENV: Environment mode (development, test, production)
        - DB_HOST: Database host (default: localhost)
        - DB_PORT: Database port (default: 5432)
        - DB_NAME: Database name (default: postgres)
        - DB_USER: Database user (default: postgres)
        - DB_PASSWORD: Database password
        - DB_SSL_MODE: SSL mode (default: prefer in development, require otherwise)
        - DB_MIN_POOL_SIZE / DB_MAX_POOL_SIZE: Pool bounds (default: 1 / 10)
        - DB_ACQUIRE_TIMEOUT: Seconds to wait for a pooled connection (default: 10)
        - DB_COMMAND_TIMEOUT: Per-statement timeout in seconds (default: 60)
        """
        mode = load_app_environment(mode)

        return cls(
            host=os.getenv('DB_HOST', 'localhost'),
            port=_env_int('DB_PORT', 5432),
            database=os.getenv('DB_NAME', 'postgres'),
            user=os.getenv('DB_USER', 'postgres'),
            password=os.getenv('DB_PASSWORD', ''),
            ssl_mode=os.getenv('DB_SSL_MODE', 'prefer' if mode == 'development' else 'require'),
            min_pool_size=_env_int('DB_MIN_POOL_SIZE', 1),
            max_pool_size=_env_int('DB_MAX_POOL_SIZE', 10),
            acquire_timeout=_env_float('DB_ACQUIRE_TIMEOUT', 10.0),
            command_timeout=_env_int('DB_COMMAND_TIMEOUT', 60),
        )

    @classmethod
    def for_local_development(cls) -> 'DatabaseConfig':
        """Configuration for local PostgreSQL instance"""
        return cls(
            host='localhost',
            port=5432,
            database='postgres',
            user='postgres',
            password='postgres',
            ssl_mode='prefer',
            min_pool_size=1,
            max_pool_size=5,
        )


@dataclass
class RegistryConfig:
    """
    Limits and policies applied by the tool registry.

    Environment Variables:
    - REGISTRY_MAX_ROWS: Rows kept in a row-set response (default: 100)
    - REGISTRY_MAX_FIELD_CHARS: Longest field value kept before truncation (default: 2000)
    - REGISTRY_EXECUTION_TIMEOUT: Seconds an operation may run (default: unbounded)
    - REGISTRY_CONFIRM_FIELD: Argument destructive operations require set to true (default: confirm)
    - REGISTRY_ESSENTIAL_CATEGORIES: Comma-separated categories registered at startup (default: core)
    """
    max_rows: int = 100
    max_field_chars: int = 2000
    execution_timeout: Optional[float] = None
    confirm_field: str = "confirm"
    essential_categories: Tuple[str, ...] = ("core",)

    def __post_init__(self):
        if self.max_rows < 1:
            raise ValueError("max_rows must be at least 1")
        if self.max_field_chars < 16:
            raise ValueError("max_field_chars must be at least 16")
        if self.execution_timeout is not None and self.execution_timeout <= 0:
            raise ValueError("execution_timeout must be positive")
        self.essential_categories = tuple(self.essential_categories)

    @classmethod
    def from_environment(cls) -> "RegistryConfig":
        essentials = os.getenv("REGISTRY_ESSENTIAL_CATEGORIES", "core")
        return cls(
            max_rows=_env_int("REGISTRY_MAX_ROWS", 100),
            max_field_chars=_env_int("REGISTRY_MAX_FIELD_CHARS", 2000),
            execution_timeout=_env_float("REGISTRY_EXECUTION_TIMEOUT", None),
            confirm_field=os.getenv("REGISTRY_CONFIRM_FIELD", "confirm"),
            essential_categories=tuple(
                name.strip() for name in essentials.split(",") if name.strip()
            ),
        )


# Utility functions
def get_environment_mode() -> EnvironmentMode:
    """Get current environment mode from APP_ENV variable"""
    mode = os.getenv('APP_ENV', 'development').lower()
    if mode not in ('development', 'test', 'production'):
        mode = 'development'
    return mode  # type: ignore


def get_log_level() -> str:
    """Log level name from LOG_LEVEL (default: INFO)"""
    return os.getenv('LOG_LEVEL', 'INFO').upper()


# Example .env file content
ENV_TEMPLATE = """
# Application Environment
# Options: development, test, production
APP_ENV=development
LOG_LEVEL=INFO

# Database Configuration
DB_HOST=localhost
DB_PORT=5432
DB_NAME=postgres
DB_USER=postgres
DB_PASSWORD=your_password_here
DB_SSL_MODE=prefer

# Connection Pool Settings
DB_MIN_POOL_SIZE=1
DB_MAX_POOL_SIZE=10
DB_ACQUIRE_TIMEOUT=10

# Registry limits
REGISTRY_MAX_ROWS=100
REGISTRY_MAX_FIELD_CHARS=2000
REGISTRY_CONFIRM_FIELD=confirm
REGISTRY_ESSENTIAL_CATEGORIES=core
"""


def create_env_file(filepath: str = ".env"):
    """Create a template .env file"""
    with open(filepath, 'w') as f:
        f.write(ENV_TEMPLATE)
