"""Camada de infraestrutura: persistência, dedupe, fila inbound e transporte.

Infraestrutura não decide regra de negócio; a montagem dos componentes
a partir das settings fica em `zapdesk.infra.runtime`.
"""
