"""Configurações centralizadas do zapdesk.

Este módulo exporta:
- Settings: classe de configuração via variáveis de ambiente
- get_settings: função cacheada para obter instância única

Uso típico:
    from zapdesk.config import get_settings
"""

from zapdesk.config.settings import (
    GRAPH_API_BASE_URL,
    GRAPH_API_VERSION,
    AgentSeed,
    Settings,
    get_settings,
)

__all__ = [
    "AgentSeed",
    "Settings",
    "get_settings",
    "GRAPH_API_VERSION",
    "GRAPH_API_BASE_URL",
]
