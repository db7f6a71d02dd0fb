"""Servicio de telemetría del fleet: polling, merge y API HTTP."""
