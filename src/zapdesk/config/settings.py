"""Configurações da aplicação via variáveis de ambiente.

Todas as configurações são carregadas de env vars.
Nunca hardcode secrets ou valores sensíveis.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

# -----------------------------------------------------------------------------
# Constantes da WhatsApp Cloud API
# -----------------------------------------------------------------------------
GRAPH_API_VERSION: str = "v24.0"
GRAPH_API_BASE_URL: str = "https://graph.facebook.com"

DEFAULT_HANDOFF_KEYWORDS: list[str] = [
    "human",
    "agent",
    "representative",
    "person",
    "manager",
]


class AgentSeed(BaseModel):
    """Atendente registrado no boot via configuração."""

    name: str
    address: str


class Settings(BaseSettings):
    """Configurações lidas do ambiente.

    Defaults servem para desenvolvimento local; produção exige Firestore
    e credenciais do WhatsApp via ambiente.
    """

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    # Aplicação
    service_name: str = "zapdesk"
    version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"

    # Negócio
    business_name: str = "My Business"
    business_description: str = "We sell quality products at great prices."
    business_hours: str = "Mon-Fri 9am-6pm"
    currency: str = "USD"
    catalog_seed_path: str | None = None  # JSON com categorias/produtos; None = demo

    # Rate limiting por remetente (janela fixa)
    rate_limit_max_messages: int = 10
    rate_limit_window_seconds: float = 60.0

    # Handoff humano
    handoff_no_agents_message: str = (
        "😔 Sorry, all our agents are busy right now. "
        "We've noted your request and someone will reach out soon. "
        "Meanwhile, type *MENU* to keep browsing."
    )
    handoff_keywords: list[str] = DEFAULT_HANDOFF_KEYWORDS
    handoff_pending_max_age_minutes: int = 60
    agents: list[AgentSeed] = []  # JSON: [{"name": "...", "address": "..."}]

    # Persistência
    store_backend: str = "memory"  # memory | firestore
    firestore_project_id: str | None = None
    firestore_database_id: str = "(default)"
    customers_collection: str = "customers"
    conversations_collection: str = "conversations"
    handoffs_collection: str = "handoffs"
    agents_collection: str = "agents"
    broadcast_optouts_collection: str = "broadcast_optouts"

    # Deduplicação inbound
    dedupe_backend: str = "memory"  # memory | redis
    redis_url: str | None = None
    dedupe_ttl_seconds: int = 604800  # 7 dias

    # Transporte (WhatsApp Cloud API)
    transport_backend: str = "whatsapp"  # whatsapp | memory
    whatsapp_verify_token: str | None = None
    whatsapp_webhook_secret: str | None = None  # HMAC SHA-256 secret
    whatsapp_access_token: str | None = None
    whatsapp_phone_number_id: str | None = None
    whatsapp_api_version: str = GRAPH_API_VERSION
    whatsapp_api_base_url: str = GRAPH_API_BASE_URL
    whatsapp_request_timeout_seconds: float = 30.0

    # OpenAI / IA
    openai_enabled: bool = False  # Feature flag (fail-safe: false)
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_timeout_seconds: float = 10.0
    ai_max_history: int = 20
    ai_history_max_customers: int = 1000

    # Pool de workers do dispatcher
    dispatch_workers: int = 4
    dispatch_queue_max_size: int = 1000

    # Cache de clientes/conversas no processo (LRU)
    conversation_cache_size: int = 10000

    # API administrativa
    admin_api_token: str | None = None
    admin_token_header: str = "X-Admin-Token"

    @property
    def whatsapp_api_endpoint(self) -> str:
        """Retorna a URL base completa da API WhatsApp (versão + base)."""
        return f"{self.whatsapp_api_base_url}/{self.whatsapp_api_version}"

    @property
    def is_production(self) -> bool:
        """Retorna True se ambiente é produção."""
        return self.environment.lower() in ("production", "prod")

    @property
    def is_development(self) -> bool:
        """Retorna True se ambiente é desenvolvimento."""
        return self.environment.lower() in ("development", "dev", "local", "test")

    def validate_store_backend(self) -> list[str]:
        """Valida backend de persistência.

        Em produção, memory é proibido (estado se perde a cada restart).
        """
        errors: list[str] = []
        backend = self.store_backend.lower()
        valid_backends = {"memory", "firestore"}
        if backend not in valid_backends:
            errors.append(
                f"STORE_BACKEND '{backend}' inválido. Valores válidos: {valid_backends}"
            )
        if self.is_production and backend == "memory":
            errors.append("STORE_BACKEND=memory é proibido em produção. Use 'firestore'.")
        return errors

    def validate_dedupe_backend(self) -> list[str]:
        """Valida backend de dedupe (idempotência inbound)."""
        errors: list[str] = []
        backend = self.dedupe_backend.lower()
        if backend not in {"memory", "redis"}:
            errors.append(f"DEDUPE_BACKEND '{backend}' inválido. Valores válidos: memory, redis")
        if backend == "redis" and not self.redis_url:
            errors.append("DEDUPE_BACKEND=redis requer REDIS_URL configurado")
        return errors

    def validate_transport_config(self) -> list[str]:
        """Valida credenciais do transporte de saída."""
        errors: list[str] = []
        backend = self.transport_backend.lower()
        if backend not in {"whatsapp", "memory"}:
            errors.append(
                f"TRANSPORT_BACKEND '{backend}' inválido. Valores válidos: whatsapp, memory"
            )
            return errors
        if backend == "whatsapp" and not self.is_development:
            if not self.whatsapp_access_token:
                errors.append("WHATSAPP_ACCESS_TOKEN é obrigatório")
            if not self.whatsapp_phone_number_id:
                errors.append("WHATSAPP_PHONE_NUMBER_ID é obrigatório")
        return errors

    def validate_openai_config(self) -> list[str]:
        """Valida configuração de OpenAI.

        Se openai_enabled=True, verifica se OPENAI_API_KEY está configurado.
        """
        errors: list[str] = []
        if self.openai_enabled and not self.openai_api_key:
            errors.append("OPENAI_ENABLED=true requer OPENAI_API_KEY configurado")
        return errors

    def validate_rate_limit(self) -> list[str]:
        """Valida parâmetros do rate limiter e do pool de workers."""
        errors: list[str] = []
        if self.rate_limit_max_messages < 1:
            errors.append("RATE_LIMIT_MAX_MESSAGES deve ser >= 1")
        if self.rate_limit_window_seconds <= 0:
            errors.append("RATE_LIMIT_WINDOW_SECONDS deve ser > 0")
        if self.dispatch_workers < 1:
            errors.append("DISPATCH_WORKERS deve ser >= 1")
        return errors

    def validate_all(self) -> list[str]:
        """Agrega todas as validações (lista vazia = OK)."""
        errors: list[str] = []
        errors.extend(self.validate_store_backend())
        errors.extend(self.validate_dedupe_backend())
        errors.extend(self.validate_transport_config())
        errors.extend(self.validate_openai_config())
        errors.extend(self.validate_rate_limit())
        return errors


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings do processo, lidas do ambiente uma única vez."""
    return Settings()
