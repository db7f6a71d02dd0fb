"""Core - modelos de dominio del pipeline de telemetría."""
