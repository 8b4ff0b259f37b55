"""zapdesk: roteamento de conversas WhatsApp entre bot e atendentes humanos."""

__version__ = "0.1.0"
